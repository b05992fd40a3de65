"""Validation and lenient parsing helpers shared by the store and the engine."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional

from .exceptions import ValidationError
from .models import EXPENSE_TYPES, PAYMENT_METHODS, categories_for_type

DATE_FORMAT = "%Y-%m-%d"

REQUIRED_FIELDS = ("date", "amount", "type", "category", "payment_method")

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# Amounts at or above 10**MAX_AMOUNT_EXPONENT are treated as unparsable.
MAX_AMOUNT_EXPONENT = 60

# Wide enough for any accepted amount plus cents, and for long running sums.
MONEY_CONTEXT = Context(prec=120, rounding=ROUND_HALF_UP)

# Leading number as read by the browser client: "50,5" and "50abc" are 50.
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(CENT, context=MONEY_CONTEXT)


def add_amounts(left: Decimal, right: Decimal) -> Decimal:
    return MONEY_CONTEXT.add(left, right)


def parse_amount_lenient(raw: object) -> Decimal:
    """Convert a stored amount to Decimal, treating anything unparsable as zero."""
    if raw is None or isinstance(raw, bool):
        return ZERO
    match = _LEADING_NUMBER.match(str(raw).strip())
    if match is None:
        return ZERO
    try:
        amount = Decimal(match.group(0))
    except InvalidOperation:
        return ZERO
    if amount and amount.adjusted() >= MAX_AMOUNT_EXPONENT:
        return ZERO
    return amount


def parse_record_date(raw: object) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string, returning None when it is not a valid date."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return datetime.strptime(raw.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def as_date(reference: object) -> date:
    """Normalise a reference date or datetime to a plain date."""
    if isinstance(reference, datetime):
        return reference.date()
    if isinstance(reference, date):
        return reference
    raise TypeError("reference_date must be a date or datetime")


def validate_required_str(value: object, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} is required")
    return trimmed


def validate_enum(value: str, field: str, allowed: Iterable[str]) -> str:
    options = tuple(allowed)
    if value not in options:
        raise ValidationError(f"{field} must be one of: {', '.join(options)}")
    return value


def validate_expense_payload(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Check required fields and the type/category pairing of a new expense."""
    missing = [
        field for field in REQUIRED_FIELDS
        if payload.get(field) is None or not str(payload.get(field)).strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    data = {field: validate_required_str(payload.get(field), field) for field in REQUIRED_FIELDS}
    validate_enum(data["type"], "type", EXPENSE_TYPES)
    validate_enum(data["category"], "category", categories_for_type(data["type"]))
    validate_enum(data["payment_method"], "payment_method", PAYMENT_METHODS)

    description = payload.get("description")
    data["description"] = "" if description is None else str(description).strip()
    return data
