"""Calendar helpers (month arithmetic on plain dates)."""

import calendar
import math
from datetime import date, timedelta
from typing import Iterator, Tuple

# Fractional months are converted to days with a flat 30-day month
DAYS_PER_MONTH = 30


def add_months(value: date, months: int) -> date:
    """Add whole *months* to *value*, clamping the day to the month's last day."""
    total_months = value.month + months
    year = value.year + (total_months - 1) // 12
    month = (total_months - 1) % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_fractional_months(value: date, months: float) -> date:
    """
    Advance *value* by a possibly fractional number of months.

    Whole months use calendar arithmetic; the fractional part is converted
    with a flat 30-day month and rounded to the nearest day.
    """
    if not math.isfinite(months) or months <= 0:
        return value
    whole = int(math.floor(months))
    fractional = months - whole
    result = add_months(value, whole)
    if fractional > 0:
        result = result + timedelta(days=int(round(fractional * DAYS_PER_MONTH)))
    return result


def month_start(value: date) -> date:
    return value.replace(day=1)


def month_length(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


def month_end(value: date) -> date:
    return value.replace(day=month_length(value))


def next_month(value: date) -> date:
    return add_months(month_start(value), 1)


def iter_months(start: date, end: date) -> Iterator[date]:
    """Yield the first day of every month touched by the inclusive range."""
    if end < start:
        return
    cursor = month_start(start)
    while cursor <= end:
        yield cursor
        cursor = next_month(cursor)


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days in the inclusive range, zero when empty."""
    if end < start:
        return 0
    return (end - start).days + 1


def overlap(start: date, end: date, other_start: date, other_end: date) -> Tuple[date, date] | None:
    """Inclusive intersection of two ranges, or None."""
    lo = max(start, other_start)
    hi = min(end, other_end)
    if hi < lo:
        return None
    return lo, hi


def month_label(value: date) -> str:
    return value.strftime("%B %Y")
