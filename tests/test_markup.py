import unittest
from datetime import date
from decimal import Decimal
from importlib import util as importlib_util

from invoice_pipeline.errors import RenderError
from invoice_pipeline.model import InvoiceRecord

PLAYWRIGHT_AVAILABLE = importlib_util.find_spec("playwright") is not None
if PLAYWRIGHT_AVAILABLE:
    from invoice_pipeline.markup import BrowserSession, MarkupRenderer, render_invoice_html

PDF_BYTES = b"%PDF-1.4\nfake page\n%%EOF\n"


def make_record(**overrides) -> InvoiceRecord:
    values = dict(
        invoice_number="INV-00001234",
        client_identifier="client@acme.test",
        amount=Decimal("49.5"),
        issue_date=date(2026, 2, 3),
        description="Consulting",
        company_name="ACME Inc.",
        company_address="1 Main St\nSpringfield",
        company_email="billing@acme.test",
    )
    values.update(overrides)
    return InvoiceRecord(**values)


class FakePage:
    def __init__(self, fail_on=None) -> None:
        self.fail_on = fail_on
        self.calls = []

    async def set_content(self, html, wait_until=None):
        self.calls.append(("set_content", wait_until))
        if self.fail_on == "load":
            raise TimeoutError("page never reached network idle")

    async def pdf(self, **options):
        self.calls.append(("pdf", options))
        if self.fail_on == "pdf":
            raise RuntimeError("print failed")
        return PDF_BYTES


class FakeBrowser:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.close_calls = 0

    async def new_page(self, **kwargs):
        return self.page

    async def close(self):
        self.close_calls += 1


def launcher_for(browser: FakeBrowser):
    async def launch():
        return browser

    return launch


@unittest.skipUnless(PLAYWRIGHT_AVAILABLE, "playwright is not installed")
class InvoiceHtmlTests(unittest.TestCase):
    def test_fills_every_value(self) -> None:
        markup = render_invoice_html(make_record())

        self.assertIn("INV-00001234", markup)
        self.assertIn("client@acme.test", markup)
        self.assertIn("$49.50", markup)
        self.assertIn("2026-02-03", markup)
        self.assertIn("1 Main St &bull; Springfield", markup)
        self.assertNotIn("$invoice_number", markup)
        self.assertNotIn("None", markup)

    def test_escapes_interpolated_values(self) -> None:
        markup = render_invoice_html(make_record(client_identifier="<script>x</script>"))

        self.assertNotIn("<script>", markup)
        self.assertIn("&lt;script&gt;", markup)

    def test_blank_fields_use_defaults(self) -> None:
        markup = render_invoice_html(make_record(client_identifier="", description="", company_name=""))

        self.assertIn('<span class="value">-</span>', markup)
        self.assertIn("Professional Services", markup)
        self.assertIn("Your Company", markup)


@unittest.skipUnless(PLAYWRIGHT_AVAILABLE, "playwright is not installed")
class MarkupRendererTests(unittest.IsolatedAsyncioTestCase):
    async def test_render_prints_after_network_idle_and_closes_browser(self) -> None:
        page = FakePage()
        browser = FakeBrowser(page)

        pdf = await MarkupRenderer(launcher=launcher_for(browser)).render(make_record())

        self.assertEqual(pdf, PDF_BYTES)
        self.assertEqual(page.calls[0], ("set_content", "networkidle"))
        options = page.calls[1][1]
        self.assertEqual(options["format"], "A4")
        self.assertTrue(options["print_background"])
        self.assertEqual(options["margin"]["top"], "20mm")
        self.assertEqual(browser.close_calls, 1)

    async def test_page_load_failure_still_closes_browser_once(self) -> None:
        browser = FakeBrowser(FakePage(fail_on="load"))

        with self.assertRaises(RenderError):
            await MarkupRenderer(launcher=launcher_for(browser)).render(make_record())

        self.assertEqual(browser.close_calls, 1)

    async def test_capture_failure_still_closes_browser_once(self) -> None:
        browser = FakeBrowser(FakePage(fail_on="pdf"))

        with self.assertRaises(RenderError) as ctx:
            await MarkupRenderer(launcher=launcher_for(browser)).render(make_record())

        self.assertEqual(ctx.exception.details, "print failed")
        self.assertEqual(browser.close_calls, 1)

    async def test_launch_failure_is_a_render_error(self) -> None:
        async def launch():
            raise OSError("chromium executable not found")

        with self.assertRaises(RenderError) as ctx:
            await MarkupRenderer(launcher=launch).render(make_record())

        self.assertEqual(ctx.exception.message, "Failed to launch browser")

    async def test_session_releases_on_exit_from_block(self) -> None:
        browser = FakeBrowser(FakePage())

        with self.assertRaises(KeyError):
            async with BrowserSession(launcher_for(browser)):
                raise KeyError("early exit")

        self.assertEqual(browser.close_calls, 1)


if __name__ == "__main__":
    unittest.main()
