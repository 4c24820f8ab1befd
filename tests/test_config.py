import os
import unittest
from unittest.mock import patch

from invoice_pipeline.config import ConfigError, Settings

CLEAN_ENV = {"PATH": os.environ.get("PATH", "")}


class SettingsFromEnvTests(unittest.TestCase):
    def test_defaults_without_environment(self) -> None:
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            settings = Settings.from_env()

        self.assertIsNone(settings.airtable_token)
        self.assertEqual(settings.airtable_base_id, "appONFSmSkZsRk7zk")
        self.assertEqual(settings.airtable_table_name, "Table 13")
        self.assertEqual(settings.attachment_field, "Invoice File")
        self.assertEqual(settings.company_name, "Your Company")
        self.assertEqual(settings.pipeline, "inline")
        self.assertIsNone(settings.http_timeout)

    def test_environment_overrides(self) -> None:
        env = dict(
            CLEAN_ENV,
            AIRTABLE_TOKEN=" pat-abc ",
            AIRTABLE_TABLE_NAME="Invoices",
            COMPANY_ADDRESS="1 Main St\\nSpringfield",
            INVOICE_PIPELINE="Delivered",
            INVOICE_HTTP_TIMEOUT_S="7.5",
            INVOICE_MAX_INFLIGHT_RENDERS="not-a-number",
        )
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.airtable_token, "pat-abc")
        self.assertEqual(settings.airtable_table_name, "Invoices")
        self.assertEqual(settings.company_address, "1 Main St\nSpringfield")
        self.assertEqual(settings.pipeline, "delivered")
        self.assertEqual(settings.http_timeout, 7.5)
        self.assertEqual(settings.max_inflight_renders, 16)

    def test_unknown_pipeline_is_rejected(self) -> None:
        with patch.dict(os.environ, dict(CLEAN_ENV, INVOICE_PIPELINE="fax"), clear=True):
            with self.assertRaises(ConfigError):
                Settings.from_env()


class SettingsTests(unittest.TestCase):
    def test_require_delivery_needs_token(self) -> None:
        with self.assertRaises(ConfigError):
            Settings().require_delivery()
        Settings(airtable_token="pat-abc").require_delivery()

    def test_urls_quote_table_name(self) -> None:
        settings = Settings(airtable_base_id="appX", airtable_api_url="https://api.example.test/v0")

        self.assertEqual(settings.table_url, "https://api.example.test/v0/appX/Table%2013")
        self.assertEqual(settings.upload_url, "https://api.example.test/v0/files")


if __name__ == "__main__":
    unittest.main()
