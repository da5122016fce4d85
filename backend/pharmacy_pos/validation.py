from __future__ import annotations
from datetime import date, datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeMeta

from .models import PAYMENT_METHODS
from .time_utils import parse_iso_datetime, parse_iso_date


# Largest amount accepted for any single price or cost field
MAX_PRICE = 999_999_999

# Units of one product in a single cart line or stock receipt
MAX_QTY = 1_000_000

# Signed 64-bit column range
MIN_INTEGER = -(2 ** 63)
MAX_INTEGER = 2 ** 63 - 1


class ValidationError(ValueError):
    """400-level input problem, raised before any transaction begins."""


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
    return {c.key: c for c in mapper.columns}


def coerce_int(field: str, value: Any) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and scientific notation.

    Values outside the signed 64-bit range the database stores are rejected too.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if not MIN_INTEGER <= parsed <= MAX_INTEGER:
        raise ValidationError(f"{field} is out of range")
    return parsed


def coerce_date(field: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
        if parsed is None:
            raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
        return parsed
    raise ValidationError(f"{field} must be a date")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Date before DateTime: calendar dates only
    if isinstance(coltype, Date) and not isinstance(coltype, DateTime):
        return coerce_date(col.key, value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

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
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_amount(field: str, value: int | None, *, allow_zero: bool) -> None:
    if value is None:
        return
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if value > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE:,}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_amount("sale_price", patch.get("sale_price"), allow_zero=False)
    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorder_level must be >= 0")


def enforce_rules_stock_receive(patch: dict) -> None:
    if patch.get("qty") is None or patch["qty"] <= 0:
        raise ValidationError("qty must be > 0")
    if patch["qty"] > MAX_QTY:
        raise ValidationError(f"qty cannot exceed {MAX_QTY:,}")
    _check_amount("cost_price", patch.get("cost_price"), allow_zero=True)


def enforce_rules_expense(patch: dict) -> None:
    _check_amount("amount", patch.get("amount"), allow_zero=False)
    method = patch.get("method")
    if method is not None and method.upper() not in PAYMENT_METHODS:
        raise ValidationError(f"method must be one of {', '.join(PAYMENT_METHODS)}")
    if method is not None:
        patch["method"] = method.upper()


@dataclass(frozen=True)
class CartLine:
    product_id: int
    qty: int


@dataclass(frozen=True)
class PaymentRequest:
    method: str
    amount: int


def parse_checkout_payload(payload: Any) -> tuple[list[CartLine], PaymentRequest]:
    """
    Validate a POST /sale body into cart lines and a payment request.

    Lines with qty <= 0 are dropped here (the cart UI sends them when a
    line is zeroed out); a cart left with nothing to sell is rejected.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Invalid items data")

    lines: list[CartLine] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("productId") is None or item.get("qty") is None:
            raise ValidationError(f"items[{index}] requires productId and qty")
        product_id = coerce_int(f"items[{index}].productId", item["productId"])
        qty = coerce_int(f"items[{index}].qty", item["qty"])
        if qty <= 0:
            continue
        if qty > MAX_QTY:
            raise ValidationError(f"items[{index}].qty cannot exceed {MAX_QTY:,}")
        lines.append(CartLine(product_id=product_id, qty=qty))

    if not lines:
        raise ValidationError("Cart has no items with a positive quantity")

    payment = payload.get("payment")
    if not isinstance(payment, dict) or not payment.get("method") or payment.get("amount") is None:
        raise ValidationError("Invalid payment data")

    method = str(payment["method"]).strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment.method must be one of {', '.join(PAYMENT_METHODS)}")

    amount = coerce_int("payment.amount", payment["amount"])
    if amount <= 0:
        raise ValidationError("payment.amount must be > 0")

    return lines, PaymentRequest(method=method, amount=amount)
