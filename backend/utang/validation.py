from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from utang.time_utils import as_naive_utc, parse_iso_datetime


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level constraint conflict (e.g., duplicate membership)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: JSON field names clients are allowed to set (security boundary)
    - required_on_create: JSON field names required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def to_column_key(field: str) -> str:
    """Map a camelCase JSON field name onto its snake_case column key."""
    return _CAMEL_BOUNDARY.sub("_", field).lower()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_decimal(field: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValidationError(f"{field} must be a number")
    try:
        dec = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return dec


def _coerce_value(field: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{field} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{field} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{field} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{field} must be an integer, not a decimal")
        raise ValidationError(f"{field} must be an integer")

    if isinstance(coltype, Numeric):
        return _coerce_decimal(field, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{field} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return as_naive_utc(value)
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{field} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{field} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{field} must be a datetime")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{field} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column key, holding only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if to_column_key(k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = to_column_key(k)
        col = cols[key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def _require_positive_amount(patch: dict, key: str, field: str) -> None:
    if key in patch and patch[key] is not None:
        amount = patch[key]
        if amount <= 0:
            raise ValidationError(f"{field} must be positive")
        if amount > MAX_AMOUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")


def _require_choice(patch: dict, key: str, field: str, choices: tuple[str, ...]) -> None:
    if key in patch and patch[key] not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def enforce_rules_membership(patch: dict) -> None:
    _require_choice(patch, "role", "role", ("OWNER", "STAFF"))


def enforce_rules_item(patch: dict) -> None:
    _require_positive_amount(patch, "price", "price")
    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("stock cannot be negative")


def enforce_rules_utang(patch: dict) -> None:
    _require_positive_amount(patch, "total_amount", "totalAmount")


def enforce_rules_line_item(patch: dict) -> None:
    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] <= 0:
        raise ValidationError("quantity must be positive")
    _require_positive_amount(patch, "unit_price", "unitPrice")


def enforce_rules_payment(patch: dict) -> None:
    _require_positive_amount(patch, "amount", "amount")
    _require_choice(patch, "payment_method", "paymentMethod", ("CASH", "EWALLET", "BANK_TRANSFER"))
