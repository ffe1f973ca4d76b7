"""
Unit Tests for calendar and fixed-point helpers
"""

import pytest
from datetime import date
from decimal import Decimal
from fractions import Fraction

from leave_planner.utils.dates import (
    add_fractional_months,
    add_months,
    inclusive_days,
    iter_months,
    month_end,
    month_label,
    month_length,
    overlap,
)
from leave_planner.utils.numbers import (
    ceil_days,
    quantize_money,
    round_half_up,
    safe_float,
    scale_days,
    span_for_days,
    split_days,
    to_decimal,
    weekly_for,
)


@pytest.mark.unit
class TestDates:

    def test_add_months_clamps_day(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2025, 11, 15), 2) == date(2026, 1, 15)

    def test_fractional_months_use_thirty_day_month(self):
        assert add_fractional_months(date(2025, 1, 1), 15) == date(2026, 4, 1)
        assert add_fractional_months(date(2025, 1, 1), 1.5) == date(2025, 2, 16)

    @pytest.mark.parametrize("months", [0, -2, float("nan"), float("inf")])
    def test_fractional_months_degenerate(self, months):
        assert add_fractional_months(date(2025, 1, 1), months) == date(2025, 1, 1)

    def test_iter_months(self):
        months = list(iter_months(date(2025, 1, 15), date(2025, 3, 1)))
        assert months == [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)]
        assert list(iter_months(date(2025, 3, 1), date(2025, 2, 1))) == []

    def test_month_helpers(self):
        assert month_length(date(2024, 2, 10)) == 29
        assert month_end(date(2025, 4, 3)) == date(2025, 4, 30)
        assert month_label(date(2026, 1, 1)) == "January 2026"

    def test_inclusive_days_and_overlap(self):
        assert inclusive_days(date(2025, 1, 1), date(2025, 1, 14)) == 14
        assert inclusive_days(date(2025, 1, 2), date(2025, 1, 1)) == 0
        assert overlap(date(2025, 1, 1), date(2025, 1, 31), date(2025, 1, 20), date(2025, 2, 5)) == (
            date(2025, 1, 20), date(2025, 1, 31)
        )
        assert overlap(date(2025, 1, 1), date(2025, 1, 10), date(2025, 1, 11), date(2025, 1, 12)) is None


@pytest.mark.unit
class TestNumbers:

    def test_to_decimal_degrades_to_zero(self):
        assert to_decimal("abc") == Decimal('0')
        assert to_decimal(float("nan")) == Decimal('0')
        assert to_decimal(Decimal('Infinity')) == Decimal('0')
        assert to_decimal(1.1) == Decimal('1.1')

    def test_safe_float(self):
        assert safe_float(None) == 0.0
        assert safe_float("inf") == 0.0
        assert safe_float("2.5") == 2.5

    def test_rounding_helpers(self):
        assert quantize_money(Decimal('1.005')) == Decimal('1.01')
        assert ceil_days(Decimal('2.01')) == 3
        assert ceil_days(Decimal('-1')) == 0
        assert round_half_up(Fraction(5, 2)) == 3
        assert round_half_up(Fraction(3, 2)) == 2
        assert round_half_up(Fraction(1, 3)) == 0

    def test_scale_days(self):
        # 100 days at 5/week span 140 calendar days; 45 of them kept
        assert scale_days(100, 45, 140) == 32
        assert scale_days(10, 0, 14) == 0
        assert scale_days(10, 20, 14) == 10
        assert scale_days(1, 1, 100) == 1

    def test_span_and_weekly(self):
        assert span_for_days(10, 5) == 14
        assert span_for_days(217, 5) == 304
        assert span_for_days(0, 5) == 0
        assert span_for_days(3, 0) == 21
        assert weekly_for(10, 14) == 5
        assert weekly_for(30, 30) == 7
        assert weekly_for(1, 30) == 1
        assert weekly_for(0, 10) == 0

    def test_split_days_largest_remainder(self):
        assert split_days(10, [31, 28]) == [5, 5]
        assert split_days(5, [1, 1, 10]) == [1, 0, 4]
        assert split_days(0, [3, 4]) == [0, 0]

    def test_split_days_over_full(self):
        parts = split_days(10, [2, 3])
        assert sum(parts) == 10
