"""Markup renderer: fills an HTML invoice and prints it with headless Chromium."""

from __future__ import annotations

import html
import logging
from string import Template
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import async_playwright

from .config import DEFAULT_COMPANY_NAME
from .errors import RenderError
from .formatting import fmt_date_iso, split_lines
from .model import InvoiceRecord, display_fields
from .rendering import RendererKind, ensure_complete_pdf

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1240, "height": 1754}
PDF_OPTIONS: Dict[str, Any] = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "20mm", "right": "15mm", "bottom": "20mm", "left": "15mm"},
}

INVOICE_TEMPLATE = Template(
    """<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Invoice $invoice_number</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, Arial, sans-serif; margin: 40px; color:#111; }
    .top { display:flex; justify-content:space-between; align-items:flex-start; }
    .brand h1 { margin:0; font-size:28px; letter-spacing:0.3px; }
    .brand .sub { color:#666; font-size:12px; }
    .meta { text-align:right; font-size:12px; color:#444; }
    .card { border:1px solid #e5e7eb; border-radius:12px; padding:20px; margin-top:24px; }
    .row { margin:6px 0; }
    .label { color:#6b7280; display:block; font-size:12px; }
    .value { font-size:16px; }
    .total { font-size:20px; font-weight:600; margin-top:12px; }
    .footer { margin-top:40px; color:#6b7280; font-size:12px; }
    .thank { margin-top:28px; font-weight:600; }
  </style>
</head>
<body>
  <div class="top">
    <div class="brand">
      <h1>Invoice</h1>
      <div class="sub">$company_name<br>$company_address</div>
    </div>
    <div class="meta">
      <div><strong>Date:</strong> $issue_date</div>
      <div><strong>Invoice #:</strong> $invoice_number</div>
    </div>
  </div>

  <div class="card">
    <div class="row"><span class="label">Client</span><span class="value">$client</span></div>
    <div class="row"><span class="label">Description</span><span class="value">$description</span></div>
    <div class="row"><span class="label">Amount</span><span class="value">$amount</span></div>
    <div class="row"><span class="label">Billing Date</span><span class="value">$issue_date</span></div>
    <div class="total">Total: $amount</div>
  </div>

  <div class="thank">Thank you for your business!</div>
  <div class="footer">This is a system generated invoice.$contact</div>
</body>
</html>
"""
)


def render_invoice_html(record: InvoiceRecord) -> str:
    fields = display_fields(record, company_name=DEFAULT_COMPANY_NAME)
    address = " &bull; ".join(html.escape(line) for line in split_lines(fields.company_address))
    contact = ""
    if fields.company_email:
        contact = f" Questions? Contact {html.escape(fields.company_email)}."
    # substitute() raises on any placeholder left without a value.
    return INVOICE_TEMPLATE.substitute(
        invoice_number=html.escape(fields.invoice_number),
        company_name=html.escape(fields.company_name),
        company_address=address,
        issue_date=fmt_date_iso(fields.issue_date),
        client=html.escape(fields.client),
        description=html.escape(fields.description),
        amount=f"${fields.amount}",
        contact=contact,
    )


class _ChromiumHandle:
    """Launched browser together with the Playwright driver that owns it."""

    def __init__(self, playwright: Any, browser: Any) -> None:
        self._playwright = playwright
        self._browser = browser

    async def new_page(self, **kwargs: Any) -> Any:
        return await self._browser.new_page(**kwargs)

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


async def launch_chromium() -> _ChromiumHandle:
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-dev-shm-usage"],
        )
    except BaseException:
        await playwright.stop()
        raise
    return _ChromiumHandle(playwright, browser)


BrowserLauncher = Callable[[], Awaitable[Any]]


class BrowserSession:
    """Scopes one browser process to an ``async with`` block.

    Entering launches the browser; leaving closes it exactly once, whichever
    way the block exits.
    """

    def __init__(self, launcher: BrowserLauncher = launch_chromium) -> None:
        self._launcher = launcher
        self._browser: Optional[Any] = None

    async def __aenter__(self) -> Any:
        try:
            self._browser = await self._launcher()
        except Exception as exc:
            raise RenderError("Failed to launch browser", str(exc) or type(exc).__name__) from exc
        return self._browser

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        browser, self._browser = self._browser, None
        if browser is None:
            return
        try:
            await browser.close()
        except Exception:
            # A close failure must not mask the render outcome.
            logger.warning("Closing headless browser failed", exc_info=True)


class MarkupRenderer:
    kind = RendererKind.MARKUP

    def __init__(self, settings: Optional["Settings"] = None, launcher: BrowserLauncher = launch_chromium) -> None:
        self.settings = settings
        self.launcher = launcher

    async def render(self, record: InvoiceRecord) -> bytes:
        markup = render_invoice_html(record)
        async with BrowserSession(self.launcher) as browser:
            try:
                page = await browser.new_page(viewport=VIEWPORT)
                await page.set_content(markup, wait_until="networkidle")
                content = await page.pdf(**PDF_OPTIONS)
            except Exception as exc:
                logger.error("Markup render of %s failed: %s", record.invoice_number, exc)
                raise RenderError("Failed to generate invoice", str(exc) or type(exc).__name__) from exc
        return ensure_complete_pdf(content)
