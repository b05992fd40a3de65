"""Pure aggregation and filtering over expense records.

Nothing in here reads the wall clock: callers pass ``reference_date``. Sums are
Decimal, rounded to two places. Unparsable amounts count as zero and records
with an unparsable date never match a month, a week window or a weekday.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Union

from .models import EXPENSE_TYPES, ExpenseRecord
from .validators import (
    ZERO,
    add_amounts,
    as_date,
    parse_amount_lenient,
    parse_record_date,
    quantize_two_decimals,
)

__all__ = [
    "WEEKDAYS",
    "WINDOWS",
    "filter_by_window",
    "grand_total",
    "monthly_total_by_type",
    "start_of_week",
    "summary",
    "total_by_type",
    "totals_by_category",
    "totals_by_payment_method",
    "totals_by_weekday",
]

DateLike = Union[date, datetime]

WINDOW_ALL = "all"
WINDOW_WEEK = "week"
WINDOWS = (WINDOW_ALL, WINDOW_WEEK)

# Display order starts on Monday; index matches date.weekday().
WEEKDAYS = ("Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom")


def _sum(records: Iterable[ExpenseRecord]) -> Decimal:
    total = ZERO
    for record in records:
        total = add_amounts(total, parse_amount_lenient(record.amount))
    return quantize_two_decimals(total)


def grand_total(records: Iterable[ExpenseRecord]) -> Decimal:
    return _sum(records)


def total_by_type(records: Iterable[ExpenseRecord], expense_type: str) -> Decimal:
    return _sum(record for record in records if record.type == expense_type)


def monthly_total_by_type(
    records: Iterable[ExpenseRecord], expense_type: str, reference_date: DateLike
) -> Decimal:
    """Total of ``expense_type`` within the calendar month of ``reference_date``."""
    reference = as_date(reference_date)

    def in_month(record: ExpenseRecord) -> bool:
        day = parse_record_date(record.date)
        return day is not None and day.year == reference.year and day.month == reference.month

    return _sum(record for record in records if record.type == expense_type and in_month(record))


def start_of_week(reference_date: DateLike) -> date:
    """Most recent Sunday on or before ``reference_date``."""
    reference = as_date(reference_date)
    # weekday(): Monday=0 .. Sunday=6, so Sunday maps to an offset of 0.
    return reference - timedelta(days=(reference.weekday() + 1) % 7)


def filter_by_window(
    records: Sequence[ExpenseRecord], window: str, reference_date: DateLike
) -> List[ExpenseRecord]:
    if window == WINDOW_ALL:
        return list(records)
    if window != WINDOW_WEEK:
        raise ValueError(f"window must be one of: {', '.join(WINDOWS)}")

    since = start_of_week(reference_date)
    filtered = []
    for record in records:
        day = parse_record_date(record.date)
        if day is not None and day >= since:
            filtered.append(record)
    return filtered


def totals_by_category(records: Iterable[ExpenseRecord]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {}
    for record in records:
        totals[record.category] = add_amounts(
            totals.get(record.category, ZERO), parse_amount_lenient(record.amount)
        )
    return {category: quantize_two_decimals(amount) for category, amount in totals.items()}


def totals_by_payment_method(records: Iterable[ExpenseRecord]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {}
    for record in records:
        method = record.payment_method
        totals[method] = add_amounts(totals.get(method, ZERO), parse_amount_lenient(record.amount))
    return {method: quantize_two_decimals(amount) for method, amount in totals.items()}


def totals_by_weekday(records: Iterable[ExpenseRecord]) -> "OrderedDict[str, Decimal]":
    """Totals per day of week in Monday-first order; empty days map to zero."""
    buckets = [ZERO] * len(WEEKDAYS)
    for record in records:
        day = parse_record_date(record.date)
        if day is None:
            continue
        buckets[day.weekday()] = add_amounts(buckets[day.weekday()], parse_amount_lenient(record.amount))
    return OrderedDict(
        (label, quantize_two_decimals(amount)) for label, amount in zip(WEEKDAYS, buckets)
    )


def summary(
    records: Sequence[ExpenseRecord], reference_date: DateLike, window: str = WINDOW_ALL
) -> Dict[str, object]:
    """Dashboard payload: per-type totals plus groupings of the selected window."""
    selected = filter_by_window(records, window, reference_date)
    return {
        "window": window,
        "reference_date": as_date(reference_date).isoformat(),
        "by_type": {
            expense_type: {
                "total": total_by_type(records, expense_type),
                "month": monthly_total_by_type(records, expense_type, reference_date),
            }
            for expense_type in EXPENSE_TYPES
        },
        "total": grand_total(selected),
        "count": len(selected),
        "by_category": totals_by_category(selected),
        "by_weekday": totals_by_weekday(selected),
        "by_payment_method": totals_by_payment_method(selected),
    }
