"""Artifact delivery to an Airtable-compatible record store."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import AttachError, RecordLookupError, UploadError
from .model import RemoteRecord, RenderedArtifact

logger = logging.getLogger(__name__)


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        body = response.text.strip()
        if len(body) > 300:
            body = body[:300] + "..."
        return f"HTTP {response.status_code}: {body}" if body else f"HTTP {response.status_code}"
    return str(exc) or type(exc).__name__


def extract_upload_url(data: Any) -> Optional[str]:
    """Pull the file URL out of a files API response.

    The endpoint answers with either a list of uploaded files or a single
    object, optionally nested under ``file``.
    """
    first: Any = None
    if isinstance(data, list):
        first = data[0] if data else None
    elif isinstance(data, dict):
        first = data.get("file") or data
    if isinstance(first, dict):
        url = first.get("url")
        if isinstance(url, str) and url.strip():
            return url.strip()
    return None


class AirtableClient:
    """Fetches records, uploads files and patches attachment fields.

    One instance owns one ``httpx.AsyncClient`` and is meant to live for a
    single pipeline invocation.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {settings.airtable_token}"},
            timeout=settings.http_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AirtableClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def record_url(self, record_id: str) -> str:
        return f"{self.settings.table_url}/{quote(record_id, safe='')}"

    async def get_record(self, record_id: str) -> RemoteRecord:
        try:
            response = await self._client.get(self.record_url(record_id))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise RecordLookupError(f"Failed to fetch record {record_id}", _describe(exc)) from exc
        except ValueError as exc:
            raise RecordLookupError(f"Failed to fetch record {record_id}", "Response was not JSON.") from exc
        if not isinstance(data, dict):
            raise RecordLookupError(f"Failed to fetch record {record_id}", "Unexpected record payload.")
        return RemoteRecord.from_api(data, fallback_id=record_id)

    async def upload(self, artifact: RenderedArtifact) -> str:
        files = {"file": (artifact.filename, artifact.content, artifact.content_type)}
        try:
            response = await self._client.post(self.settings.upload_url, files=files)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise UploadError("Upload failed", _describe(exc)) from exc
        except ValueError as exc:
            raise UploadError("Upload failed", "Response was not JSON.") from exc

        url = extract_upload_url(data)
        if not url:
            raise UploadError("Upload did not return a URL")
        logger.debug("Uploaded %s (%d bytes) to %s", artifact.filename, len(artifact.content), url)
        return url

    async def attach(self, record_id: str, url: str, filename: str) -> None:
        # Replaces the attachment field rather than appending to it.
        payload = {"fields": {self.settings.attachment_field: [{"url": url, "filename": filename}]}}
        try:
            response = await self._client.patch(self.record_url(record_id), json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AttachError(f"Failed to attach invoice to record {record_id}", _describe(exc)) from exc
