"""Vector layout renderer: draws the invoice directly with fpdf2."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional

from fpdf import FPDF

from .config import DEFAULT_COMPANY_NAME
from .errors import RenderError
from .fonts import FontManager
from .formatting import fmt_date_long, round_rect, split_lines, wrap_text
from .layout import (
    AMOUNT_RIGHT,
    BADGE_Y,
    BILL_TO_LABEL_Y,
    BILL_TO_NAME_Y,
    COLOR_ACCENT,
    COLOR_BOX_FILL,
    COLOR_BOX_STROKE,
    COLOR_INK,
    COLOR_MUTED,
    COLOR_PAID,
    COLOR_WHITE,
    COMPANY_LINE_H,
    COMPANY_LINE_Y,
    COMPANY_MAX_LINES,
    COMPANY_NAME_Y,
    CONTENT_RIGHT,
    CONTENT_W,
    DESCRIPTION_W,
    DIVIDER_W,
    DIVIDER_Y,
    FONT_SIZE_BODY,
    FONT_SIZE_CLIENT,
    FONT_SIZE_COMPANY,
    FONT_SIZE_LABEL,
    FONT_SIZE_SMALL,
    FONT_SIZE_TITLE,
    FONT_SIZE_TOTAL,
    FONT_SIZE_VALUE,
    FOOTER_CONTACT_Y,
    FOOTER_NOTE_Y,
    FOOTER_PAYMENT_Y,
    FOOTER_THANKS_Y,
    MARGIN,
    META_BOX_GAP,
    META_BOX_H,
    META_BOX_W,
    META_BOX_Y,
    META_LABEL_OFFSET_Y,
    META_PAD_X,
    META_VALUE_OFFSET_Y,
    PAGE_CENTER,
    PAGE_FORMAT,
    ROW_LINE_H,
    ROW_MAX_LINES,
    ROW_SEPARATOR_Y,
    ROW_Y,
    TABLE_BAR_H,
    TABLE_BAR_RADIUS,
    TABLE_BAR_TEXT_Y,
    TABLE_BAR_Y,
    TABLE_TEXT_X,
    TITLE_Y,
    TOTALS_H,
    TOTALS_LABEL_Y,
    TOTALS_VALUE_Y,
    TOTALS_Y,
)
from .model import InvoiceRecord, display_fields
from .rendering import RendererKind, ensure_complete_pdf

if TYPE_CHECKING:
    from .config import Settings
    from .render_pool import RenderPool

logger = logging.getLogger(__name__)

MAX_TOTAL_WIDTH = 300.0


class VectorInvoiceDocument:
    """Single-page invoice drawn at fixed coordinates."""

    def __init__(
        self,
        record: InvoiceRecord,
        font_path: Optional[str] = None,
        bold_path: Optional[str] = None,
    ) -> None:
        self.fields = display_fields(record, company_name=DEFAULT_COMPANY_NAME)
        self.pdf = FPDF(unit="pt", format=PAGE_FORMAT)
        self.pdf.set_auto_page_break(False)
        self.pdf.set_title(f"Invoice {self.fields.invoice_number}")
        self.pdf.set_author(self.fields.company_name)
        self.pdf.add_page()

        self.fonts = FontManager(self.pdf, font_path, bold_path)

    def _draw_header(self) -> None:
        self.fonts.draw_text_centered(PAGE_CENTER, TITLE_Y, "INVOICE", FONT_SIZE_TITLE, COLOR_ACCENT, bold=True)
        self.fonts.draw_text(MARGIN, COMPANY_NAME_Y, self.fields.company_name, FONT_SIZE_COMPANY, COLOR_INK, bold=True)

        company_lines = split_lines(self.fields.company_address)
        if self.fields.company_email:
            company_lines.append(f"Email: {self.fields.company_email}")
        for i, line in enumerate(company_lines[:COMPANY_MAX_LINES]):
            self.fonts.draw_text(MARGIN, COMPANY_LINE_Y + i * COMPANY_LINE_H, line, FONT_SIZE_LABEL, COLOR_MUTED)

        # Core fonts have no check mark glyph.
        badge = "✓ PAID" if self.fonts.use_unicode else "PAID"
        self.fonts.draw_text_right(CONTENT_RIGHT, BADGE_Y, badge, FONT_SIZE_LABEL, COLOR_PAID, bold=True)

        self.pdf.set_draw_color(*COLOR_ACCENT)
        self.pdf.set_line_width(DIVIDER_W)
        self.pdf.line(MARGIN, DIVIDER_Y, CONTENT_RIGHT, DIVIDER_Y)

    def _draw_meta_box(self, x: float, label: str, value: str) -> None:
        self.pdf.set_fill_color(*COLOR_BOX_FILL)
        self.pdf.set_draw_color(*COLOR_BOX_STROKE)
        self.pdf.set_line_width(1)
        self.pdf.rect(x, META_BOX_Y, META_BOX_W, META_BOX_H, style="DF")
        self.fonts.draw_text(x + META_PAD_X, META_BOX_Y + META_LABEL_OFFSET_Y, label, FONT_SIZE_SMALL, COLOR_MUTED)
        self.fonts.draw_text(x + META_PAD_X, META_BOX_Y + META_VALUE_OFFSET_Y, value, FONT_SIZE_VALUE, COLOR_INK)

    def _draw_meta_boxes(self) -> None:
        self._draw_meta_box(MARGIN, "INVOICE NUMBER", self.fields.invoice_number)
        self._draw_meta_box(
            MARGIN + META_BOX_W + META_BOX_GAP,
            "INVOICE DATE",
            fmt_date_long(self.fields.issue_date),
        )

    def _draw_bill_to(self) -> None:
        self.fonts.draw_text(MARGIN, BILL_TO_LABEL_Y, "BILL TO", FONT_SIZE_BODY, COLOR_MUTED)
        lines = wrap_text(self.fonts, self.fields.client, CONTENT_W, FONT_SIZE_CLIENT)
        for i, line in enumerate(lines[:2]):
            self.fonts.draw_text(MARGIN, BILL_TO_NAME_Y + i * 18, line, FONT_SIZE_CLIENT, COLOR_INK)

    def _description_lines(self) -> List[str]:
        lines = wrap_text(self.fonts, self.fields.description, DESCRIPTION_W, FONT_SIZE_BODY)
        if len(lines) <= ROW_MAX_LINES:
            return lines
        kept = lines[:ROW_MAX_LINES]
        kept[-1] = kept[-1].rstrip(" .") + "..."
        return kept

    def _draw_table(self) -> None:
        self.pdf.set_fill_color(*COLOR_INK)
        round_rect(self.pdf, MARGIN, TABLE_BAR_Y, CONTENT_W, TABLE_BAR_H, TABLE_BAR_RADIUS, fill=True)
        self.fonts.draw_text(TABLE_TEXT_X, TABLE_BAR_TEXT_Y, "DESCRIPTION", FONT_SIZE_LABEL, COLOR_WHITE, bold=True)
        self.fonts.draw_text_right(AMOUNT_RIGHT, TABLE_BAR_TEXT_Y, "AMOUNT", FONT_SIZE_LABEL, COLOR_WHITE, bold=True)

        for i, line in enumerate(self._description_lines()):
            self.fonts.draw_text(TABLE_TEXT_X, ROW_Y + i * ROW_LINE_H, line, FONT_SIZE_BODY, COLOR_INK)
        self.fonts.draw_text_right(AMOUNT_RIGHT, ROW_Y, f"${self.fields.amount}", FONT_SIZE_BODY, COLOR_INK, bold=True)

        self.pdf.set_draw_color(*COLOR_BOX_STROKE)
        self.pdf.set_line_width(1)
        self.pdf.line(MARGIN, ROW_SEPARATOR_Y, CONTENT_RIGHT, ROW_SEPARATOR_Y)

    def _draw_totals(self) -> None:
        self.pdf.set_fill_color(*COLOR_ACCENT)
        self.pdf.rect(MARGIN, TOTALS_Y, CONTENT_W, TOTALS_H, style="F")
        self.fonts.draw_text(TABLE_TEXT_X, TOTALS_LABEL_Y, "TOTAL AMOUNT", 14, COLOR_WHITE, bold=True)

        total_text = f"${self.fields.amount}"
        size = FONT_SIZE_TOTAL
        while size > FONT_SIZE_BODY and self.fonts.text_width(total_text, size, bold=True) > MAX_TOTAL_WIDTH:
            size -= 2
        self.fonts.draw_text_right(AMOUNT_RIGHT, TOTALS_VALUE_Y, total_text, size, COLOR_WHITE, bold=True)

    def _draw_footer(self) -> None:
        self.fonts.draw_text_centered(PAGE_CENTER, FOOTER_THANKS_Y, "Thank you for your business!", FONT_SIZE_BODY, COLOR_INK)
        self.fonts.draw_text_centered(
            PAGE_CENTER,
            FOOTER_NOTE_Y,
            "This is a system generated invoice.",
            FONT_SIZE_SMALL,
            COLOR_MUTED,
        )
        self.fonts.draw_text_centered(
            PAGE_CENTER,
            FOOTER_PAYMENT_Y,
            "Payment has been received and processed.",
            FONT_SIZE_SMALL,
            COLOR_MUTED,
        )
        if self.fields.company_email:
            self.fonts.draw_text_centered(
                PAGE_CENTER,
                FOOTER_CONTACT_Y,
                f"If you have any questions, please contact us at {self.fields.company_email}",
                FONT_SIZE_SMALL,
                COLOR_MUTED,
            )

    def render(self) -> bytes:
        self._draw_header()
        self._draw_meta_boxes()
        self._draw_bill_to()
        self._draw_table()
        self._draw_totals()
        self._draw_footer()

        # output() closes the document and serializes every page in one pass.
        pdf_blob = self.pdf.output()
        if isinstance(pdf_blob, (bytes, bytearray)):
            return bytes(pdf_blob)
        raise RuntimeError(f"Unexpected PDF output type: {type(pdf_blob).__name__}")


def render_invoice_pdf(
    record: InvoiceRecord,
    font_path: Optional[str] = None,
    bold_path: Optional[str] = None,
) -> bytes:
    return VectorInvoiceDocument(record, font_path, bold_path).render()


class VectorRenderer:
    kind = RendererKind.VECTOR

    def __init__(self, settings: "Settings", pool: Optional["RenderPool"] = None) -> None:
        self.font_path = settings.font_path
        self.font_bold_path = settings.font_bold_path
        self.pool = pool

    async def render(self, record: InvoiceRecord) -> bytes:
        args = (record, self.font_path, self.font_bold_path)
        try:
            if self.pool is not None:
                content = await asyncio.wrap_future(self.pool.submit(render_invoice_pdf, *args))
            else:
                loop = asyncio.get_running_loop()
                content = await loop.run_in_executor(None, render_invoice_pdf, *args)
        except Exception as exc:
            logger.error("Vector render of %s failed: %s", record.invoice_number, exc)
            raise RenderError("Failed to generate invoice", str(exc) or type(exc).__name__) from exc
        return ensure_complete_pdf(content)
