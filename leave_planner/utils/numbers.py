"""
Fixed-point helpers.

Money is carried as Decimal and quantized to 0.01 at three places only:
rate calculation, period pricing and monthly aggregation. Day counts are
integers; scaling uses round-half-up, deficits convert to days with ceil,
and splits across months use the largest-remainder method.
"""

import math
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, InvalidOperation
from fractions import Fraction
from typing import List, Sequence

MONEY = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Convert any numeric input to a finite Decimal, degrading to zero."""
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def safe_float(value, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY, rounding=ROUND_HALF_UP)


def ceil_days(value: Decimal) -> int:
    if value <= ZERO:
        return 0
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def round_half_up(value: Fraction) -> int:
    """Round a non-negative fraction to the nearest integer, halves up."""
    if value <= 0:
        return 0
    return math.floor(value + Fraction(1, 2))


def scale_days(days: int, kept: int, total: int) -> int:
    """Scale *days* by kept/total calendar days, never above *kept*."""
    if days <= 0 or kept <= 0 or total <= 0:
        return 0
    if kept >= total:
        return days
    return min(kept, max(1, round_half_up(Fraction(days * kept, total))))


def span_for_days(days: int, weekly_days: int) -> int:
    """Calendar days needed to take *days* benefit days at *weekly_days* per week."""
    if days <= 0:
        return 0
    weekly = max(1, min(7, weekly_days))
    return max(1, math.ceil(days * 7 / weekly))


def weekly_for(days: int, calendar_days: int) -> int:
    """Effective days per week for *days* spread over *calendar_days*."""
    if days <= 0 or calendar_days <= 0:
        return 0
    return min(7, max(1, round_half_up(Fraction(days * 7, calendar_days))))


def split_days(total: int, weights: Sequence[int]) -> List[int]:
    """
    Distribute *total* across *weights* proportionally (largest remainder).

    Each share is capped at its weight while room remains elsewhere, so a
    period's benefit days never exceed the calendar days of a segment unless
    the whole period is over-full.
    """
    parts = [0] * len(weights)
    weight_sum = sum(weights)
    if total <= 0 or weight_sum <= 0:
        return parts

    remainders = []
    allocated = 0
    for index, weight in enumerate(weights):
        raw = Fraction(total * weight, weight_sum)
        base = min(weight, math.floor(raw))
        parts[index] = base
        allocated += base
        remainders.append((raw - math.floor(raw), index))

    remaining = total - allocated
    for _, index in sorted(remainders, key=lambda item: (-item[0], item[1])):
        if remaining <= 0:
            break
        if parts[index] >= weights[index]:
            continue
        parts[index] += 1
        remaining -= 1

    index = 0
    while remaining > 0:
        parts[index % len(parts)] += 1
        remaining -= 1
        index += 1
    return parts
