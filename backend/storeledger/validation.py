# Overview: Request payload validation driven by model column metadata.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Boolean, Date, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import Money, Quantity, TaxRate
from storeledger.time_utils import parse_iso_date, parse_iso_datetime


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a route lets clients touch.

    writable_fields is the allowlist; anything else in the payload is
    rejected outright. required_on_create only applies to POST.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _as_int(key: str, value: Any) -> int:
    # bool is an int subclass; true/false is never a quantity
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    if not text or "e" in text.lower() or "." in text:
        raise ValidationError(f"{key} must be a plain integer")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be a plain integer") from None


def _as_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")


def _as_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _as_text(key: str, value: Any) -> str:
    return str(value).strip()


def _as_bool(key: str, value: Any) -> bool:
    return value if isinstance(value, bool) else bool(value)


# First match wins; Text is a String subclass
_COERCERS: list[tuple[type, Callable[[str, Any], Any]]] = [
    (Integer, _as_int),
    (Boolean, _as_bool),
    (DateTime, _as_datetime),
    (Date, _as_date),
    (String, _as_text),
]


def _coerce(col, value: Any) -> Any:
    for coltype, coerce in _COERCERS:
        if isinstance(col.type, coltype):
            return coerce(col.key, value)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Normalize a JSON body into a patch dict for ``model``.

    partial=False is create semantics and enforces required_on_create;
    partial=True only validates the keys that were sent. String lengths and
    nullability come straight from the column definitions.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    cols = {c.key: c for c in model.__mapper__.columns}
    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in cols)
    if rejected:
        raise ValidationError(
            f"Field not allowed: {', '.join(rejected)}",
            details={"fields": rejected},
        )

    patch: dict = {}
    for key, raw in payload.items():
        col = cols[key]

        if raw is None:
            # A column default may stand in for null on create, never on update
            if not col.nullable and (partial or col.default is None):
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce(col, raw)
        if isinstance(value, str):
            if value == "" and not col.nullable:
                raise ValidationError(f"{key} cannot be blank")
            limit = getattr(col.type, "length", None)
            if limit and len(value) > limit:
                raise ValidationError(f"{key} exceeds max length {limit}")
        patch[key] = value

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Range checks on product money, stock and tax fields."""
    if patch.get("price_cents") is not None:
        Money.price(patch["price_cents"])
    if patch.get("capital_cents") is not None:
        Money.cost(patch["capital_cents"])
    if patch.get("quantity") is not None:
        Quantity.positive(patch["quantity"], field="quantity")
    if patch.get("tax_bps") is not None:
        TaxRate(patch["tax_bps"])


def enforce_rules_sold(patch: dict) -> None:
    if "total_sold_out" in patch:
        if patch["total_sold_out"] is None:
            raise ValidationError("total_sold_out is required")
        Quantity.positive(patch["total_sold_out"])
