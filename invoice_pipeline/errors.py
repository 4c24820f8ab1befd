"""Error taxonomy shared by every pipeline stage."""

from __future__ import annotations

from typing import Any, Dict, Optional


class InvoiceError(Exception):
    """Base class for classified pipeline failures."""

    status = 500
    stage = "validating"

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(InvoiceError):
    """Bad or missing input the caller can fix."""

    status = 400
    stage = "validating"


class RecordLookupError(InvoiceError):
    """The target record could not be fetched (missing, unauthorized, unreachable)."""

    stage = "validating"


class RenderError(InvoiceError):
    """The drawing stream or the browser failed to produce a PDF."""

    stage = "rendering"


class UploadError(InvoiceError):
    """Remote storage rejected the file or returned no URL."""

    stage = "uploading"


class AttachError(InvoiceError):
    """Linking an uploaded file to its record failed; degrades the result only."""

    stage = "attaching"


class DependencyError(RuntimeError):
    """Raised when a required runtime dependency is missing."""
