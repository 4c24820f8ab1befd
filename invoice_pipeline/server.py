"""HTTP server entrypoints for the invoice pipeline."""

from __future__ import annotations

import asyncio
import errno
import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple

from .config import Settings
from .pipeline import InvoicePipeline
from .render_pool import RenderPool

logger = logging.getLogger(__name__)

INVOICE_PATHS = ("/", "/invoice", "/generate", "/api/invoice", "/api/generate-invoice")
HEALTH_PATHS = ("/health", "/healthz", "/ready")
ALLOWED_METHOD = "POST"

DISCONNECT_ERRNOS = {
    errno.EPIPE,
    errno.ECONNRESET,
    errno.ETIMEDOUT,
}

Response = Tuple[int, Dict[str, Any]]


def is_client_disconnect(exc: BaseException) -> bool:
    if isinstance(exc, (BrokenPipeError, ConnectionResetError, TimeoutError)):
        return True
    return isinstance(exc, OSError) and exc.errno in DISCONNECT_ERRNOS


def _route(path: str) -> str:
    return path.split("?", 1)[0].rstrip("/") or "/"


def validate_invoice_payload(body: bytes) -> Tuple[Optional[Dict[str, Any]], Optional[Response]]:
    try:
        payload = json.loads(body.decode("utf-8"))
    except UnicodeDecodeError:
        return None, (
            400,
            {"success": False, "error": "invalid_encoding", "details": "Body must be UTF-8 encoded JSON."},
        )
    except json.JSONDecodeError as exc:
        return None, (
            400,
            {
                "success": False,
                "error": "invalid_json",
                "details": f"{exc.msg} (line {exc.lineno}, column {exc.colno})",
            },
        )

    if not isinstance(payload, dict):
        return None, (
            400,
            {"success": False, "error": "invalid_payload", "details": "JSON root must be an object."},
        )
    return payload, None


def handle_invoice_request(pipeline: InvoicePipeline, method: str, path: str, body: bytes) -> Response:
    """Dispatch one request to the pipeline without touching sockets."""
    route = _route(path)
    if route not in INVOICE_PATHS:
        return 404, {"error": "not_found", "details": "Unsupported endpoint."}
    if method.upper() != ALLOWED_METHOD:
        return 405, {"error": "Method Not Allowed"}

    payload, error = validate_invoice_payload(body)
    if error is not None:
        return error
    assert payload is not None

    result = asyncio.run(pipeline.run(payload))
    return result.to_response()


class InvoiceHandler(BaseHTTPRequestHandler):
    server: "InvoiceHTTPServer"

    def _write_response(self, status: int, content_type: str, body: bytes, headers: Optional[Dict[str, str]] = None) -> bool:
        try:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            for name, value in (headers or {}).items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(body)
            return True
        except Exception as exc:
            if is_client_disconnect(exc):
                return False
            raise

    def _send_json(self, status: int, payload: Dict[str, Any]) -> bool:
        body = json.dumps(payload).encode("utf-8")
        headers = {"Allow": ALLOWED_METHOD} if status == 405 else None
        return self._write_response(status, "application/json", body, headers)

    def _read_body(self) -> Optional[bytes]:
        header = self.headers.get("Content-Length")
        if header is None:
            self._send_json(
                411,
                {"error": "missing_content_length", "details": "Content-Length header is required."},
            )
            return None

        try:
            content_length = int(header)
        except ValueError:
            self._send_json(400, {"error": "invalid_content_length", "details": "Content-Length must be an integer."})
            return None

        if content_length <= 0:
            self._send_json(400, {"error": "empty_body", "details": "Request body cannot be empty."})
            return None

        max_body_bytes = self.server.settings.max_body_bytes
        if content_length > max_body_bytes:
            self._send_json(413, {"error": "payload_too_large", "details": f"Body exceeds {max_body_bytes} bytes."})
            return None

        try:
            return self.rfile.read(content_length)
        except Exception as exc:
            if is_client_disconnect(exc):
                return None
            raise

    def _reject_method(self) -> None:
        if _route(self.path) in INVOICE_PATHS:
            self._send_json(405, {"error": "Method Not Allowed"})
        else:
            self._send_json(404, {"error": "not_found", "details": "Unsupported endpoint."})

    def do_POST(self) -> None:
        if _route(self.path) not in INVOICE_PATHS:
            self._send_json(404, {"error": "not_found", "details": "Unsupported endpoint."})
            return

        body = self._read_body()
        if body is None:
            return

        settings = self.server.settings
        acquired = self.server.inflight.acquire(timeout=settings.render_queue_timeout_ms / 1000.0)
        if not acquired:
            self._send_json(
                503,
                {
                    "success": False,
                    "error": "server_busy",
                    "details": "Invoice queue is full; retry shortly.",
                    "retry_after_ms": settings.render_queue_timeout_ms,
                    "max_inflight_renders": settings.max_inflight_renders,
                },
            )
            return

        try:
            status, payload = handle_invoice_request(self.server.pipeline, "POST", self.path, body)
        except Exception as exc:
            logger.exception("Unhandled error while serving %s", self.path)
            status, payload = 500, {"success": False, "error": "Failed to generate invoice", "details": str(exc)}
        finally:
            self.server.inflight.release()

        self._send_json(status, payload)

    def do_GET(self) -> None:
        if _route(self.path) in HEALTH_PATHS:
            self._send_json(200, {"status": "ok", "pipeline": self.server.pipeline.variant})
            return
        self._reject_method()

    def do_PUT(self) -> None:
        self._reject_method()

    def do_PATCH(self) -> None:
        self._reject_method()

    def do_DELETE(self) -> None:
        self._reject_method()

    def do_OPTIONS(self) -> None:
        self._reject_method()

    def handle_one_request(self) -> None:
        try:
            super().handle_one_request()
        except Exception as exc:
            if is_client_disconnect(exc):
                return
            raise

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class InvoiceHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: Tuple[str, int], settings: Settings, pipeline: InvoicePipeline) -> None:
        self.request_queue_size = settings.listen_backlog
        self.settings = settings
        self.pipeline = pipeline
        self.inflight = threading.BoundedSemaphore(settings.max_inflight_renders)
        super().__init__(address, InvoiceHandler)


def run(settings: Settings, host: str = "0.0.0.0", port: int = 8080) -> None:
    pool: Optional[RenderPool] = None
    if settings.render_workers > 0:
        pool = RenderPool(settings.render_workers)
        pool.start()

    try:
        pipeline = InvoicePipeline.from_settings(settings, pool=pool)
        server = InvoiceHTTPServer((host, port), settings, pipeline)
        logger.info("Invoice API server (%s pipeline) listening on http://%s:%d", pipeline.variant, host, port)
        server.serve_forever()
    finally:
        if pool is not None:
            pool.shutdown()
