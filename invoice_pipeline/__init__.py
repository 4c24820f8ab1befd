"""Public package API for invoice generation and delivery."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .config import ConfigError, Settings
from .errors import (
    AttachError,
    InvoiceError,
    RecordLookupError,
    RenderError,
    UploadError,
    ValidationError,
)
from .model import DeliveryResult, InvoiceRecord, RenderedArtifact
from .pipeline import InvoicePipeline, PipelineResult, Stage


async def generate_invoice(payload: Dict[str, Any], settings: Optional[Settings] = None) -> PipelineResult:
    """Run the pipeline selected by ``settings`` (or the environment) once."""
    pipeline = InvoicePipeline.from_settings(settings or Settings.from_env())
    return await pipeline.run(payload)


def run(host: str = "0.0.0.0", port: int = 8080, settings: Optional[Settings] = None) -> None:
    from .server import run as _run

    _run(settings or Settings.from_env(), host, port)


__all__ = [
    "AttachError",
    "ConfigError",
    "DeliveryResult",
    "InvoiceError",
    "InvoicePipeline",
    "InvoiceRecord",
    "PipelineResult",
    "RecordLookupError",
    "RenderError",
    "RenderedArtifact",
    "Settings",
    "Stage",
    "UploadError",
    "ValidationError",
    "generate_invoice",
    "run",
]
