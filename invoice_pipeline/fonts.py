"""Font registration and text drawing helpers for the vector renderer."""

from __future__ import annotations

import os
import threading
from typing import Optional, Tuple

from fpdf import FPDF

FONT_INIT_LOCK = threading.Lock()


class FontManager:
    """Draws text with an embedded TTF when one is configured, else core Helvetica.

    Core fonts only cover Latin-1, so text is reduced to that range when no
    TTF is available.
    """

    FAMILY = "InvoiceFont"
    CORE_FAMILY = "Helvetica"

    def __init__(self, pdf: FPDF, font_path: Optional[str] = None, bold_path: Optional[str] = None) -> None:
        self.pdf = pdf
        self.family = self.CORE_FAMILY
        self.use_unicode = False
        self.has_bold = True

        if font_path and os.path.exists(font_path):
            # fpdf font registration parses the TTF; serialize it across render threads.
            with FONT_INIT_LOCK:
                self.pdf.add_font(self.FAMILY, "", font_path)
                self.has_bold = False
                if bold_path and os.path.exists(bold_path):
                    self.pdf.add_font(self.FAMILY, "B", bold_path)
                    self.has_bold = True
            self.family = self.FAMILY
            self.use_unicode = True

    def _prepare(self, text: str) -> str:
        if self.use_unicode:
            return text
        return text.encode("latin-1", "replace").decode("latin-1")

    def _select(self, size: float, bold: bool) -> None:
        style = "B" if bold and self.has_bold else ""
        self.pdf.set_font(self.family, style, size)

    def text_width(self, text: str, size: float, bold: bool = False) -> float:
        self._select(size, bold)
        return self.pdf.get_string_width(self._prepare(text))

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        size: float,
        color: Tuple[int, int, int],
        bold: bool = False,
    ) -> None:
        text = self._prepare(text)
        self.pdf.set_text_color(*color)
        self._select(size, bold)
        self.pdf.text(x, y, text)
        if bold and not self.has_bold:
            self.pdf.text(x + 0.4, y, text)

    def draw_text_right(
        self,
        right: float,
        y: float,
        text: str,
        size: float,
        color: Tuple[int, int, int],
        bold: bool = False,
    ) -> None:
        self.draw_text(right - self.text_width(text, size, bold), y, text, size, color, bold)

    def draw_text_centered(
        self,
        center: float,
        y: float,
        text: str,
        size: float,
        color: Tuple[int, int, int],
        bold: bool = False,
    ) -> None:
        self.draw_text(center - self.text_width(text, size, bold) / 2.0, y, text, size, color, bold)
