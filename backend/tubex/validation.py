from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from tubex.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime, Date, Enum, JSON
from sqlalchemy.orm import DeclarativeMeta


# Payload keys that map onto a differently named model attribute
# ("metadata" is reserved on declarative models).
PAYLOAD_KEY_ALIASES = {"metadata": "meta"}

# Maximum base price: 99,999,999.99 (fits NUMERIC(10, 2))
MAX_PRICE = Decimal("99999999.99")

TAX_ID_LENGTH = 10
MIN_BUSINESS_LICENSE_LENGTH = 8


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate tax ID)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {prop.key: prop.columns[0] for prop in mapper.column_attrs}


def _coerce_enum(key: str, coltype, value):
    if not isinstance(value, str) or value not in coltype.enums:
        raise ValidationError(f"{key} must be one of: {', '.join(coltype.enums)}")
    return value


def _coerce_int(key: str, coltype, value):
    """Ints or digit strings; floats, bools and 1e3-style strings are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    text = value.strip() if isinstance(value, str) else ""
    if "e" in text.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in text:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _coerce_numeric(key: str, coltype, value):
    """Prices and quantities: Decimal within the column's precision and scale."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{key} must be a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    scale = 2 if coltype.scale is None else coltype.scale
    if -number.as_tuple().exponent > scale:
        raise ValidationError(f"{key} allows at most {scale} decimal places")
    if coltype.precision is not None and abs(number) >= Decimal(10) ** (coltype.precision - scale):
        raise ValidationError(f"{key} is out of range")
    return number


def _coerce_bool(key: str, coltype, value):
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value


def _coerce_datetime(key: str, coltype, value):
    if isinstance(value, datetime):
        return value
    message = f"{key} must be an ISO-8601 datetime"
    if not isinstance(value, str):
        raise ValidationError(message)
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(message)
    if parsed is None:
        raise ValidationError(message)
    return parsed


def _coerce_date(key: str, coltype, value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    message = f"{key} must be an ISO-8601 date (YYYY-MM-DD)"
    if not isinstance(value, str):
        raise ValidationError(message)
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(message)
    if parsed is None:
        raise ValidationError(message)
    return parsed


def _coerce_json(key: str, coltype, value):
    if not isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a JSON object")
    return value


def _coerce_text(key: str, coltype, value):
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    return str(value).strip()


# Order matters: sqlalchemy Enum subclasses String.
_COERCERS = (
    (Enum, _coerce_enum),
    (Integer, _coerce_int),
    (Numeric, _coerce_numeric),
    (Boolean, _coerce_bool),
    (DateTime, _coerce_datetime),
    (Date, _coerce_date),
    (JSON, _coerce_json),
    ((String, Text), _coerce_text),
)


def _coerce_value(key: str, col, value: Any):
    if value is None:
        return None
    for coltype, coerce in _COERCERS:
        if isinstance(col.type, coltype):
            return coerce(key, col.type, value)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Enum values)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model attribute name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if PAYLOAD_KEY_ALIASES.get(k, k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        attr = PAYLOAD_KEY_ALIASES.get(k, k)
        col = cols[attr]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[attr] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and not isinstance(col.type, Enum) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[attr] = val

    return patch


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        else:
            raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def parse_id_list(value: Any, field: str) -> list[int]:
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{field} must be a non-empty list of ids")
    return [parse_positive_int(v, field) for v in value]


def parse_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{field} must be a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if -number.as_tuple().exponent > 2:
        raise ValidationError(f"{field} allows at most 2 decimal places")
    return number


def validate_tax_id(tax_id: Any) -> str:
    """Tax IDs are exactly 10 digits."""
    value = str(tax_id or "").strip()
    if len(value) != TAX_ID_LENGTH or not value.isdigit():
        raise ValidationError(f"tax_id must be exactly {TAX_ID_LENGTH} digits")
    return value


def validate_business_license(license_number: Any) -> str:
    value = str(license_number or "").strip()
    if len(value) < MIN_BUSINESS_LICENSE_LENGTH:
        raise ValidationError(
            f"business_license must be at least {MIN_BUSINESS_LICENSE_LENGTH} characters"
        )
    return value


def validate_address(address: Any) -> dict:
    """Company addresses: {street, city, province, postal_code}."""
    if not isinstance(address, dict):
        raise ValidationError("address must be an object")
    required = ("street", "city", "province", "postal_code")
    missing = [k for k in required if not str(address.get(k) or "").strip()]
    if missing:
        raise ValidationError(f"address is missing: {', '.join(missing)}")
    return {k: str(address[k]).strip() for k in required}


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "base_price" in patch and patch["base_price"] is not None:
        price = patch["base_price"]
        if price < 0:
            raise ValidationError("base_price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"base_price cannot exceed {MAX_PRICE:,}")


def enforce_rules_inventory(patch: dict) -> None:
    for field in ("quantity", "min_threshold", "max_threshold", "reorder_point", "reorder_quantity"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")

    low = patch.get("min_threshold")
    high = patch.get("max_threshold")
    if low is not None and high is not None and low > high:
        raise ValidationError("min_threshold cannot exceed max_threshold")


def enforce_rules_batch(patch: dict) -> None:
    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")

    made = patch.get("manufacturing_date")
    expires = patch.get("expiry_date")
    if made is not None and expires is not None and expires <= made:
        raise ValidationError("expiry_date must be after manufacturing_date")


def enforce_rules_warehouse(patch: dict) -> None:
    if patch.get("capacity") is not None and patch["capacity"] < 0:
        raise ValidationError("capacity must be >= 0")
