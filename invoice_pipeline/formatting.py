"""Formatting and drawing utility helpers."""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Optional, Protocol

from dateutil import parser as dateutil_parser

CENTS = Decimal("0.01")


class TextWidthProvider(Protocol):
    def text_width(self, text: str, size: float, bold: bool = False) -> float:
        ...


class PdfPathCanvas(Protocol):
    k: float
    h: float

    def rect(self, x: float, y: float, w: float, h: float, style: str) -> None:
        ...

    def _out(self, value: str) -> None:
        ...


def parse_amount(value: Any) -> Optional[Decimal]:
    """Return the value as a Decimal, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if value.startswith("$"):
            value = value[1:]
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def fmt_amount(amount: Decimal) -> str:
    return str(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def fmt_money(amount: Decimal, symbol: str = "$") -> str:
    return f"{symbol}{fmt_amount(amount)}"


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return dateutil_parser.parse(raw).date()
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognised date {raw!r}") from exc


def fmt_date_long(value: date) -> str:
    """Format a date as 'October 19, 2026'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def fmt_date_iso(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def split_lines(text: str) -> List[str]:
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip() != ""]


def wrap_text(
    fonts_obj: TextWidthProvider,
    text: str,
    max_width: float,
    font_size: float,
    bold: bool = False,
) -> List[str]:
    def line_width(value: str) -> float:
        return fonts_obj.text_width(value, font_size, bold=bold)

    def wrap_paragraph(paragraph: str) -> List[str]:
        words = paragraph.split()
        if not words:
            return [paragraph]

        lines: List[str] = []
        current = ""
        for word in words:
            candidate = word if not current else f"{current} {word}"
            if line_width(candidate) <= max_width:
                current = candidate
                continue

            if current:
                lines.append(current)
            current = word
            if line_width(current) <= max_width:
                continue

            # A single word wider than the column is hard-split by character.
            chunk = ""
            for char in current:
                if chunk and line_width(chunk + char) > max_width:
                    lines.append(chunk)
                    chunk = char
                else:
                    chunk += char
            current = chunk

        if current:
            lines.append(current)
        return lines

    result: List[str] = []
    for paragraph in text.split("\n"):
        result.extend(wrap_paragraph(paragraph))
    return result if result else [text]


def round_rect(
    pdf: PdfPathCanvas,
    x: float,
    y: float,
    width: float,
    height: float,
    radius: float,
    fill: bool = True,
) -> None:
    radius = max(0.0, min(radius, width / 2.0, height / 2.0))
    if radius == 0:
        pdf.rect(x, y, width, height, "F" if fill else "D")
        return

    k = pdf.k
    hp = pdf.h
    kappa = 0.5522847498307936  # circle approximation constant

    def arc(x1: float, y1: float, x2: float, y2: float, x3: float, y3: float) -> None:
        pdf._out(
            "%.2f %.2f %.2f %.2f %.2f %.2f c"
            % (x1 * k, (hp - y1) * k, x2 * k, (hp - y2) * k, x3 * k, (hp - y3) * k)
        )

    right = x + width
    bottom = y + height
    bend = radius - radius * kappa

    pdf._out("%.2f %.2f m" % ((x + radius) * k, (hp - y) * k))
    pdf._out("%.2f %.2f l" % ((right - radius) * k, (hp - y) * k))
    arc(right - bend, y, right, y + bend, right, y + radius)
    pdf._out("%.2f %.2f l" % (right * k, (hp - (bottom - radius)) * k))
    arc(right, bottom - bend, right - bend, bottom, right - radius, bottom)
    pdf._out("%.2f %.2f l" % ((x + radius) * k, (hp - bottom) * k))
    arc(x + bend, bottom, x, bottom - bend, x, bottom - radius)
    pdf._out("%.2f %.2f l" % (x * k, (hp - (y + radius)) * k))
    arc(x, y + bend, x + bend, y, x + radius, y)

    pdf._out("f" if fill else "S")
