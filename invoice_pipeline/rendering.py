"""Rendering strategy interface and factory."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional, Protocol

from .errors import DependencyError, RenderError
from .model import InvoiceRecord

if TYPE_CHECKING:
    from .config import Settings
    from .render_pool import RenderPool

PDF_HEADER = b"%PDF-"
PDF_TRAILER = b"%%EOF"


class RendererKind(str, enum.Enum):
    VECTOR = "vector"
    MARKUP = "markup"


class Renderer(Protocol):
    kind: RendererKind

    async def render(self, record: InvoiceRecord) -> bytes:
        ...


def ensure_complete_pdf(content: object) -> bytes:
    """Reject buffers that are not a finalized PDF document."""
    if isinstance(content, bytearray):
        content = bytes(content)
    if not isinstance(content, bytes) or not content:
        raise RenderError("Failed to generate invoice", "Renderer produced an empty document.")
    if not content.startswith(PDF_HEADER):
        raise RenderError("Failed to generate invoice", "Renderer output is not a PDF document.")
    if PDF_TRAILER not in content[-1024:]:
        raise RenderError("Failed to generate invoice", "PDF stream was not finalized.")
    return content


def create_renderer(
    kind: RendererKind,
    settings: "Settings",
    pool: Optional["RenderPool"] = None,
) -> Renderer:
    if kind is RendererKind.VECTOR:
        try:
            from .vector import VectorRenderer
        except ModuleNotFoundError as exc:
            if exc.name == "fpdf":
                raise DependencyError(
                    "Missing dependency 'fpdf2'. Install project dependencies with 'pip install -e .'."
                ) from exc
            raise
        return VectorRenderer(settings, pool=pool)

    if kind is RendererKind.MARKUP:
        try:
            from .markup import MarkupRenderer
        except ModuleNotFoundError as exc:
            if exc.name and exc.name.split(".")[0] == "playwright":
                raise DependencyError(
                    "Missing dependency 'playwright'. Install it with 'pip install -e .' "
                    "and run 'playwright install chromium'."
                ) from exc
            raise
        return MarkupRenderer(settings)

    raise ValueError(f"Unknown renderer kind: {kind!r}")
