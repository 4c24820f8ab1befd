import base64
import re
import unittest
from datetime import date
from decimal import Decimal

from invoice_pipeline.config import Settings
from invoice_pipeline.errors import ValidationError
from invoice_pipeline.model import (
    BILLING_POLICY,
    DEFAULT_DESCRIPTION,
    PRESENTATION_POLICY,
    RawFields,
    RemoteRecord,
    RenderedArtifact,
    build_record,
    generate_invoice_number,
)

SETTINGS = Settings(company_name="ACME Inc.", company_address="1 Main St", company_email="billing@acme.test")


def build(payload, remote=None, policy=PRESENTATION_POLICY, **kwargs):
    return build_record(RawFields.from_payload(payload), remote, policy=policy, settings=SETTINGS, **kwargs)


class RawFieldsTests(unittest.TestCase):
    def test_reads_canonical_names(self) -> None:
        fields = RawFields.from_payload(
            {"clientIdentifier": "Acme Co", "amount": "1200", "issueDate": "2026-01-15", "recordId": " rec1 "}
        )
        self.assertEqual(fields.client_identifier, "Acme Co")
        self.assertEqual(fields.amount, "1200")
        self.assertEqual(fields.issue_date, "2026-01-15")
        self.assertEqual(fields.record_id, "rec1")

    def test_reads_legacy_aliases(self) -> None:
        fields = RawFields.from_payload({"email": "a@b.test", "payment": 10, "date": "2026-02-01", "services": "Design"})
        self.assertEqual(fields.client_identifier, "a@b.test")
        self.assertEqual(fields.amount, 10)
        self.assertEqual(fields.issue_date, "2026-02-01")
        self.assertEqual(fields.description, "Design")
        self.assertIsNone(fields.record_id)


class BuildRecordTests(unittest.TestCase):
    def test_amount_formats_with_two_decimals(self) -> None:
        for raw, expected in ((49.5, "49.50"), ("1200", "1200.00"), ("3.14159", "3.14"), (7, "7.00")):
            with self.subTest(raw=raw):
                record = build({"clientIdentifier": "Acme Co", "amount": raw})
                self.assertEqual(record.formatted_amount, expected)

    def test_applies_documented_defaults(self) -> None:
        record = build({"clientIdentifier": "Acme Co", "amount": "5"}, today=date(2026, 10, 19))
        self.assertEqual(record.issue_date, date(2026, 10, 19))
        self.assertEqual(record.description, DEFAULT_DESCRIPTION)
        self.assertEqual(record.company_name, "ACME Inc.")
        self.assertEqual(record.company_address, "1 Main St")
        self.assertEqual(record.company_email, "billing@acme.test")

    def test_request_overrides_company_defaults(self) -> None:
        record = build({"clientIdentifier": "Acme Co", "amount": "5", "companyName": "Other LLC"})
        self.assertEqual(record.company_name, "Other LLC")

    def test_missing_client_and_amount_fails_for_both_policies(self) -> None:
        for policy in (PRESENTATION_POLICY, BILLING_POLICY):
            with self.subTest(policy=policy.name):
                with self.assertRaises(ValidationError) as ctx:
                    build({"description": "Nothing else"}, policy=policy)
                self.assertEqual(ctx.exception.status, 400)

    def test_presentation_policy_requires_both_fields(self) -> None:
        with self.assertRaises(ValidationError):
            build({"clientIdentifier": "Acme Co"})
        with self.assertRaises(ValidationError):
            build({"amount": "10"})

    def test_presentation_policy_renders_non_numeric_amount_as_zero(self) -> None:
        record = build({"clientIdentifier": "Acme Co", "amount": "lots"})
        self.assertEqual(record.formatted_amount, "0.00")

    def test_billing_policy_rejects_non_numeric_amount(self) -> None:
        with self.assertRaises(ValidationError):
            build({"clientIdentifier": "Acme Co", "amount": "lots"}, policy=BILLING_POLICY)

    def test_billing_policy_defaults_missing_amount_to_zero(self) -> None:
        record = build({"clientIdentifier": "Acme Co"}, policy=BILLING_POLICY)
        self.assertEqual(record.amount, Decimal("0"))

    def test_negative_amount_is_rejected(self) -> None:
        for policy in (PRESENTATION_POLICY, BILLING_POLICY):
            with self.subTest(policy=policy.name):
                with self.assertRaises(ValidationError):
                    build({"clientIdentifier": "Acme Co", "amount": "-1"}, policy=policy)

    def test_non_finite_amount_is_rejected(self) -> None:
        for policy in (PRESENTATION_POLICY, BILLING_POLICY):
            for raw in ("NaN", float("inf")):
                with self.subTest(policy=policy.name, raw=raw):
                    with self.assertRaises(ValidationError):
                        build({"clientIdentifier": "Acme Co", "amount": raw}, policy=policy)

    def test_amount_too_large_for_cents_is_rejected(self) -> None:
        for policy in (PRESENTATION_POLICY, BILLING_POLICY):
            for raw in ("1e30", "123456789012345678901234567890"):
                with self.subTest(policy=policy.name, raw=raw):
                    with self.assertRaises(ValidationError) as ctx:
                        build({"clientIdentifier": "Acme Co", "amount": raw}, policy=policy)
                    self.assertEqual(ctx.exception.details, "Amount is too large.")

    def test_largest_representable_amount_keeps_two_decimals(self) -> None:
        record = build({"clientIdentifier": "Acme Co", "amount": "12345678901234567890123456"})
        self.assertEqual(record.formatted_amount, "12345678901234567890123456.00")

    def test_unparseable_issue_date_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            build({"clientIdentifier": "Acme Co", "amount": "1", "issueDate": "someday"})

    def test_remote_fields_take_precedence_where_present(self) -> None:
        remote = RemoteRecord(
            record_id="rec123",
            fields={"Email": "remote@acme.test", "Date": "2026-03-01", "payment": None},
        )
        record = build(
            {"clientIdentifier": "local@acme.test", "amount": "99", "issueDate": "2026-01-01", "recordId": "rec123"},
            remote,
            policy=BILLING_POLICY,
        )
        self.assertEqual(record.client_identifier, "remote@acme.test")
        self.assertEqual(record.issue_date, date(2026, 3, 1))
        self.assertEqual(record.formatted_amount, "99.00")
        self.assertEqual(record.record_id, "rec123")

    def test_remote_record_id_comes_from_the_api(self) -> None:
        remote = RemoteRecord.from_api({"id": "recCanonical", "fields": {"Email": "x@y.test"}}, fallback_id="rec1")
        record = build({"recordId": "rec1"}, remote, policy=BILLING_POLICY)
        self.assertEqual(record.record_id, "recCanonical")

    def test_uses_given_invoice_number(self) -> None:
        record = build({"clientIdentifier": "Acme Co", "amount": "1"}, invoice_number="INV-42")
        self.assertEqual(record.invoice_number, "INV-42")
        self.assertEqual(record.filename, "Invoice_INV-42.pdf")


class InvoiceNumberTests(unittest.TestCase):
    def test_uses_last_digits_of_milliseconds(self) -> None:
        number = generate_invoice_number(6, clock=lambda: 1_760_000_123_456_789_000)
        self.assertEqual(number, "INV-123456")

    def test_matches_expected_pattern(self) -> None:
        self.assertRegex(generate_invoice_number(), re.compile(r"^INV-\d{8}$"))


class RenderedArtifactTests(unittest.TestCase):
    def test_data_url_embeds_base64_pdf(self) -> None:
        artifact = RenderedArtifact(content=b"%PDF-1.4 test", filename="Invoice_INV-1.pdf")
        prefix = "data:application/pdf;base64,"
        url = artifact.data_url()
        self.assertTrue(url.startswith(prefix))
        self.assertEqual(base64.b64decode(url[len(prefix):]), b"%PDF-1.4 test")


if __name__ == "__main__":
    unittest.main()
