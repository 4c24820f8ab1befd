"""Runtime configuration loaded once from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

DEFAULT_AIRTABLE_API_URL = "https://api.airtable.com/v0"
DEFAULT_COMPANY_NAME = "Your Company"
DEFAULT_COMPANY_ADDRESS = "123 Business Street\nCity, State 12345"
DEFAULT_COMPANY_EMAIL = "info@company.com"

PIPELINE_INLINE = "inline"
PIPELINE_DELIVERED = "delivered"
PIPELINE_VARIANTS = (PIPELINE_INLINE, PIPELINE_DELIVERED)

FONT_REGULAR_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/DejaVuSans.ttf",
]
FONT_BOLD_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/Library/Fonts/DejaVuSans-Bold.ttf",
]


class ConfigError(RuntimeError):
    """Raised at startup when required configuration is missing."""


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def env_float(name: str, default: Optional[float], minimum: float = 0.0) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > minimum else default


def env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def find_font_path(env_var: str, candidates: list) -> Optional[str]:
    override = os.getenv(env_var)
    if override and os.path.exists(override):
        return override

    for path in candidates:
        if os.path.exists(path):
            return path
    return None


@dataclass(frozen=True)
class Settings:
    """Read-only process configuration shared by every pipeline invocation."""

    airtable_token: Optional[str] = None
    airtable_base_id: str = "appONFSmSkZsRk7zk"
    airtable_table_name: str = "Table 13"
    attachment_field: str = "Invoice File"
    airtable_api_url: str = DEFAULT_AIRTABLE_API_URL

    company_name: str = DEFAULT_COMPANY_NAME
    company_address: str = DEFAULT_COMPANY_ADDRESS
    company_email: str = DEFAULT_COMPANY_EMAIL

    pipeline: str = PIPELINE_INLINE
    invoice_number_digits: int = 8
    font_path: Optional[str] = None
    font_bold_path: Optional[str] = None
    http_timeout: Optional[float] = None

    max_body_bytes: int = 1024 * 1024
    max_inflight_renders: int = 16
    render_queue_timeout_ms: int = 1500
    render_workers: int = 0
    listen_backlog: int = 512
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        pipeline = env_str("INVOICE_PIPELINE", PIPELINE_INLINE).lower()
        if pipeline not in PIPELINE_VARIANTS:
            raise ConfigError(
                f"INVOICE_PIPELINE must be one of {', '.join(PIPELINE_VARIANTS)}; got {pipeline!r}."
            )

        token = os.getenv("AIRTABLE_TOKEN")
        return cls(
            airtable_token=token.strip() if token and token.strip() else None,
            airtable_base_id=env_str("AIRTABLE_BASE_ID", cls.airtable_base_id),
            airtable_table_name=env_str("AIRTABLE_TABLE_NAME", cls.airtable_table_name),
            attachment_field=env_str("AIRTABLE_ATTACHMENT_FIELD", cls.attachment_field),
            airtable_api_url=env_str("AIRTABLE_API_URL", DEFAULT_AIRTABLE_API_URL).rstrip("/"),
            company_name=env_str("COMPANY_NAME", DEFAULT_COMPANY_NAME),
            # Literal "\n" sequences allow multi-line addresses in a single env value.
            company_address=env_str("COMPANY_ADDRESS", DEFAULT_COMPANY_ADDRESS).replace("\\n", "\n"),
            company_email=env_str("COMPANY_EMAIL", DEFAULT_COMPANY_EMAIL),
            pipeline=pipeline,
            invoice_number_digits=env_int("INVOICE_NUMBER_DIGITS", 8, minimum=4),
            font_path=find_font_path("INVOICE_FONT_PATH", FONT_REGULAR_CANDIDATES),
            font_bold_path=find_font_path("INVOICE_FONT_BOLD_PATH", FONT_BOLD_CANDIDATES),
            http_timeout=env_float("INVOICE_HTTP_TIMEOUT_S", None),
            max_body_bytes=env_int("INVOICE_MAX_BODY_BYTES", 1024 * 1024, minimum=1024),
            max_inflight_renders=env_int("INVOICE_MAX_INFLIGHT_RENDERS", 16, minimum=1),
            render_queue_timeout_ms=env_int("INVOICE_RENDER_QUEUE_TIMEOUT_MS", 1500, minimum=0),
            render_workers=env_int("INVOICE_RENDER_WORKERS", 0, minimum=0),
            listen_backlog=env_int("INVOICE_LISTEN_BACKLOG", 512, minimum=1),
            log_level=env_str("INVOICE_LOG_LEVEL", "INFO").upper(),
        )

    def require_delivery(self) -> None:
        """Fail fast when remote delivery is configured without credentials."""
        if not self.airtable_token:
            raise ConfigError("Missing env AIRTABLE_TOKEN; it is required for remote invoice delivery.")
        if not self.airtable_base_id:
            raise ConfigError("Missing env AIRTABLE_BASE_ID.")

    @property
    def table_url(self) -> str:
        return f"{self.airtable_api_url}/{self.airtable_base_id}/{quote(self.airtable_table_name, safe='')}"

    @property
    def upload_url(self) -> str:
        return f"{self.airtable_api_url}/files"
