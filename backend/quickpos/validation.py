from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .services.pricing import PAYMENT_METHODS, to_cents, percent_to_bps


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# 100% expressed in basis points
MAX_TAX_RATE_BPS = 10_000

# Largest tendered amount: 99,999,999.99
MAX_AMOUNT_CENTS = 9_999_999_999

MAX_STOCK = 1_000_000_000

# Signed 64-bit INTEGER column range
MAX_ID = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: JSON key -> model column (also the writable allowlist)
    - required_on_create: JSON keys required for POST
    - money_fields: JSON decimal amounts stored as integer cents
    - percent_fields: JSON percentages stored as integer basis points
    - aliases: alternate JSON keys accepted for a field
    """
    fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()
    money_fields: frozenset[str] = frozenset()
    percent_fields: frozenset[str] = frozenset()
    aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Floats are accepted only when integral (JSON clients send 2.0)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{key} must be a number")
    try:
        # str() first so 12.99 stays 12.99 rather than its binary expansion
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    return amount


def _coerce_value(key: str, col, value: Any, policy: ModelValidationPolicy):
    if key in policy.money_fields:
        return to_cents(coerce_decimal(key, value))
    if key in policy.percent_fields:
        return percent_to_bps(coerce_decimal(key, value))

    coltype = col.type

    if isinstance(coltype, Integer):
        return coerce_int(key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{key} must be a string")
        return str(value).strip()

    # Default: leave as-is
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
    - a policy allowlist (fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = {policy.aliases.get(k, k): v for k, v in payload.items()}
    # "id" is assigned by the store; clients echoing it back are tolerated
    payload.pop("id", None)

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[policy.fields[k]]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[col.key] = None
            continue

        val = _coerce_value(k, col, raw, policy)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[col.key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key, label in (("price_cents", "price"), ("cost_cents", "cost")):
        if key in patch and patch[key] is not None:
            if patch[key] < 0:
                raise ValidationError(f"{label} must be >= 0")
            if patch[key] > MAX_PRICE_CENTS:
                raise ValidationError(f"{label} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")

    if "stock" in patch and patch["stock"] is not None:
        if patch["stock"] < 0:
            raise ValidationError("stock must be >= 0")
        if patch["stock"] > MAX_STOCK:
            raise ValidationError(f"stock cannot exceed {MAX_STOCK:,}")

    if "tax_rate_bps" in patch and patch["tax_rate_bps"] is not None:
        if not 0 <= patch["tax_rate_bps"] <= MAX_TAX_RATE_BPS:
            raise ValidationError("taxRatePercent must be between 0 and 100")


def _coerce_id(key: str, value: Any) -> int:
    ident = coerce_int(key, value)
    if not -MAX_ID <= ident <= MAX_ID:
        raise ValidationError(f"{key} is out of range")
    return ident


def validate_checkout_payload(payload: dict) -> dict:
    """
    Normalize a POST /api/transactions body into checkout() kwargs.

    Body: {items: [{productId, qty}], customerId?, paymentMethod, amountPaid?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_items = payload.get("items")
    if raw_items is None:
        raise ValidationError("items is required")
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if not raw_items:
        raise ValidationError("Cart is empty")

    items = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        if "productId" not in raw:
            raise ValidationError(f"items[{i}].productId is required")
        qty = raw.get("qty", raw.get("quantity"))
        if qty is None:
            raise ValidationError(f"items[{i}].qty is required")
        items.append({
            "product_id": _coerce_id(f"items[{i}].productId", raw["productId"]),
            "quantity": coerce_int(f"items[{i}].qty", qty),
        })

    customer_id = payload.get("customerId")
    if customer_id is not None:
        customer_id = _coerce_id("customerId", customer_id)

    method = payload.get("paymentMethod")
    if not method:
        raise ValidationError("paymentMethod is required")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")

    amount_paid = payload.get("amountPaid")
    if amount_paid is not None:
        amount_paid = to_cents(coerce_decimal("amountPaid", amount_paid))
        if amount_paid < 0:
            raise ValidationError("amountPaid must be >= 0")
        if amount_paid > MAX_AMOUNT_CENTS:
            raise ValidationError(f"amountPaid cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")

    return {
        "items": items,
        "customer_id": customer_id,
        "payment_method": method,
        "amount_paid_cents": amount_paid,
    }
