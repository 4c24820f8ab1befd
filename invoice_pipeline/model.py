"""Invoice document model and the builder that resolves it from raw input."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping, Optional

from .config import DEFAULT_COMPANY_NAME, Settings
from .errors import ValidationError
from .formatting import CENTS, fmt_amount, parse_amount, parse_date

DEFAULT_DESCRIPTION = "Professional Services"
PDF_CONTENT_TYPE = "application/pdf"

# Request keys accepted for each field, in priority order.
FIELD_ALIASES: Dict[str, tuple] = {
    "client_identifier": ("clientIdentifier", "clientName", "email", "Email"),
    "amount": ("amount", "payment"),
    "issue_date": ("issueDate", "invoiceDate", "date", "Date"),
    "description": ("description", "services"),
    "company_name": ("companyName",),
    "company_address": ("companyAddress",),
    "record_id": ("recordId",),
}

# Column names on the remote record that feed invoice fields.
REMOTE_FIELD_NAMES: Dict[str, str] = {
    "client_identifier": "Email",
    "amount": "payment",
    "issue_date": "Date",
    "description": "Description",
    "company_name": "Company",
}


def _first_present(payload: Mapping[str, Any], keys: tuple) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class RawFields:
    """Unvalidated invoice fields as they arrived in a request."""

    client_identifier: Any = None
    amount: Any = None
    issue_date: Any = None
    description: Any = None
    company_name: Any = None
    company_address: Any = None
    record_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawFields":
        values = {name: _first_present(payload, keys) for name, keys in FIELD_ALIASES.items()}
        record_id = values.pop("record_id")
        if not _is_blank(record_id):
            record_id = str(record_id).strip()
        else:
            record_id = None
        return cls(record_id=record_id, **values)


@dataclass(frozen=True)
class RemoteRecord:
    record_id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping[str, Any], fallback_id: str) -> "RemoteRecord":
        fields = data.get("fields") or {}
        if not isinstance(fields, dict):
            fields = {}
        return cls(record_id=str(data.get("id") or fallback_id), fields=dict(fields))

    def invoice_fields(self) -> Dict[str, Any]:
        """Map remote columns onto invoice field names, keeping only present values."""
        resolved: Dict[str, Any] = {}
        for name, column in REMOTE_FIELD_NAMES.items():
            value = self.fields.get(column)
            if value is not None:
                resolved[name] = value
        return resolved


@dataclass(frozen=True)
class BuildPolicy:
    """Per-variant strictness rules for the builder."""

    name: str
    require_client_and_amount: bool
    strict_amount: bool


# Inline rendering: both fields required, unparseable amounts shown as 0.00.
PRESENTATION_POLICY = BuildPolicy("presentation", require_client_and_amount=True, strict_amount=False)
# Remote delivery: either field suffices, amounts must be numeric when given.
BILLING_POLICY = BuildPolicy("billing", require_client_and_amount=False, strict_amount=True)


@dataclass(frozen=True)
class InvoiceRecord:
    invoice_number: str
    client_identifier: str
    amount: Decimal
    issue_date: date
    description: str = DEFAULT_DESCRIPTION
    company_name: str = ""
    company_address: str = ""
    company_email: str = ""
    record_id: Optional[str] = None

    @property
    def formatted_amount(self) -> str:
        return fmt_amount(self.amount)

    @property
    def filename(self) -> str:
        return artifact_filename(self.invoice_number)


@dataclass(frozen=True)
class RenderedArtifact:
    content: bytes
    filename: str
    content_type: str = PDF_CONTENT_TYPE

    @classmethod
    def for_record(cls, record: InvoiceRecord, content: bytes) -> "RenderedArtifact":
        return cls(content=content, filename=record.filename)

    def data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


@dataclass(frozen=True)
class DeliveryResult:
    artifact_url: str
    attached_record_id: Optional[str] = None
    attachment_succeeded: bool = False


def artifact_filename(invoice_number: str) -> str:
    return f"Invoice_{invoice_number}.pdf"


def generate_invoice_number(digits: int = 8, clock: Callable[[], int] = time.time_ns) -> str:
    """Build an ``INV-`` number from the last digits of the current epoch milliseconds.

    Numbers only look monotonic; two invocations within the same millisecond
    (or one wrap of the kept digits apart) collide.
    """
    millis = str(clock() // 1_000_000)
    return f"INV-{millis[-digits:]}"


def _is_non_finite(raw: Any) -> bool:
    if isinstance(raw, bool):
        return False
    try:
        return not Decimal(str(raw).strip()).is_finite()
    except (InvalidOperation, ValueError):
        return False


def _resolve_amount(raw: Any, policy: BuildPolicy) -> Decimal:
    if _is_blank(raw):
        return Decimal("0")
    amount = parse_amount(raw)
    if amount is None:
        if _is_non_finite(raw):
            raise ValidationError("Invalid amount", "Amount must be a finite number.")
        if policy.strict_amount:
            raise ValidationError("Invalid amount", f"Amount {raw!r} is not a number.")
        return Decimal("0")
    if amount < 0:
        raise ValidationError("Invalid amount", "Amount must not be negative.")
    try:
        amount.quantize(CENTS)
    except InvalidOperation as exc:
        # Cents need more digits than the decimal context carries.
        raise ValidationError("Invalid amount", "Amount is too large.") from exc
    return amount


def build_record(
    fields: RawFields,
    remote: Optional[RemoteRecord] = None,
    *,
    policy: BuildPolicy,
    settings: Settings,
    invoice_number: Optional[str] = None,
    today: Optional[date] = None,
) -> InvoiceRecord:
    """Resolve request fields, remote record fields and defaults into an InvoiceRecord.

    Remote values win wherever the remote record has them; request values fill
    the rest; documented defaults cover whatever is still missing.
    """
    resolved: Dict[str, Any] = {
        name: getattr(fields, name) for name in REMOTE_FIELD_NAMES
    }
    resolved["company_address"] = fields.company_address
    if remote is not None:
        resolved.update(remote.invoice_fields())

    client = resolved["client_identifier"]
    amount_raw = resolved["amount"]
    missing_client = _is_blank(client)
    missing_amount = _is_blank(amount_raw)

    if missing_client and missing_amount:
        raise ValidationError(
            "Missing required fields",
            "Need either recordId or {clientIdentifier, amount} in body.",
        )
    if policy.require_client_and_amount and (missing_client or missing_amount):
        missing = "clientIdentifier" if missing_client else "amount"
        raise ValidationError("Missing required fields", f"'{missing}' is required.")

    amount = _resolve_amount(amount_raw, policy)

    try:
        issue_date = parse_date(resolved["issue_date"])
    except ValueError as exc:
        raise ValidationError("Invalid issueDate", str(exc)) from exc

    description = resolved["description"]
    company_name = resolved["company_name"]
    company_address = resolved["company_address"]

    return InvoiceRecord(
        invoice_number=invoice_number or generate_invoice_number(settings.invoice_number_digits),
        client_identifier="" if missing_client else str(client).strip(),
        amount=amount,
        issue_date=issue_date or today or date.today(),
        description=DEFAULT_DESCRIPTION if _is_blank(description) else str(description).strip(),
        company_name=settings.company_name if _is_blank(company_name) else str(company_name).strip(),
        company_address=settings.company_address if _is_blank(company_address) else str(company_address),
        company_email=settings.company_email,
        record_id=remote.record_id if remote is not None else fields.record_id,
    )


@dataclass(frozen=True)
class DisplayFields:
    """Render-ready strings with every default applied."""

    invoice_number: str
    client: str
    amount: str
    issue_date: date
    description: str
    company_name: str
    company_address: str
    company_email: str


def display_fields(
    record: InvoiceRecord,
    company_name: str = DEFAULT_COMPANY_NAME,
    company_email: str = "",
) -> DisplayFields:
    return DisplayFields(
        invoice_number=record.invoice_number or "-",
        client=record.client_identifier or "-",
        amount=record.formatted_amount,
        issue_date=record.issue_date or date.today(),
        description=record.description or DEFAULT_DESCRIPTION,
        company_name=record.company_name or company_name,
        company_address=record.company_address or "",
        company_email=record.company_email or company_email,
    )
