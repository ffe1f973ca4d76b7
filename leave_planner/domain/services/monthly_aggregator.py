"""
MONTHLY AGGREGATOR
Reduce a period list into per-calendar-month household income

RESPONSIBILITIES:
- Split periods at month boundaries
- Distribute benefit days across months (largest remainder)
- Benefit, employer top-up and wage income per month
- Days by tier and per caregiver
- Lowest fully covered month summary

RULES:
❌ No pool mutation (read-only)
✅ Full months use the flat monthly wage
✅ Partial months prorate by covered days / month length
✅ Quantize monthly totals to 0.01
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from leave_planner.domain.models import (
    AllocationContext,
    BenefitTier,
    Caregiver,
    INDIVIDUALS,
    IncomeSummary,
    LeavePeriod,
    MonthlyBreakdown,
)
from leave_planner.utils.dates import (
    inclusive_days,
    iter_months,
    month_end,
    month_label,
    month_length,
    overlap,
)
from leave_planner.utils.numbers import ZERO, quantize_money, split_days, weekly_for

logger = logging.getLogger(__name__)

TIE_TOLERANCE = Decimal('0.5')


def segment_days(period: LeavePeriod) -> Dict[date, Tuple[int, int]]:
    """
    Split a period by calendar month

    Returns:
        month start -> (calendar days, benefit days)
    """
    months = list(iter_months(period.start, period.end))
    calendars = []
    for month in months:
        lo, hi = overlap(period.start, period.end, month, month_end(month))
        calendars.append(inclusive_days(lo, hi))
    days = split_days(period.benefit_days, calendars)
    return {month: (c, d) for month, c, d in zip(months, calendars, days)}


class MonthlyAggregator:
    """
    Monthly Aggregator
    Read-only view of a timeline, month by month
    """

    def __init__(self, context: AllocationContext):
        self.context = context

    def aggregate(self, periods: Sequence[LeavePeriod]) -> List[MonthlyBreakdown]:
        """
        Build one breakdown per month of the plan

        Args:
            periods: Any periods (fixed or floating with tentative dates)

        Returns:
            Chronological list of MonthlyBreakdown
        """
        if self.context.plan_days <= 0:
            return []

        segments = [(period, segment_days(period)) for period in periods]
        return [
            self._build(month, segments)
            for month in iter_months(self.context.plan_start, self.context.last_day)
        ]

    def aggregate_month(self, periods: Sequence[LeavePeriod], month: date) -> MonthlyBreakdown:
        """Breakdown of a single month"""
        month = month.replace(day=1)
        last = month_end(month)
        relevant = [
            (period, segment_days(period))
            for period in periods
            if period.start <= last and period.end >= month
        ]
        return self._build(month, relevant)

    def _build(
        self,
        month: date,
        segments: Sequence[Tuple[LeavePeriod, Dict[date, Tuple[int, int]]]],
    ) -> MonthlyBreakdown:
        rates = self.context.rates
        length = month_length(month)

        benefit_income = ZERO
        top_up_income = ZERO
        wage_income = ZERO
        covered = 0
        days_by_tier: Dict[BenefitTier, int] = defaultdict(int)
        leave_days: Dict[Caregiver, int] = {c: 0 for c in INDIVIDUALS}
        benefit_days: Dict[Caregiver, int] = {c: 0 for c in INDIVIDUALS}
        exclusive_days: Dict[Caregiver, int] = {c: 0 for c in INDIVIDUALS}
        standard_days: Dict[Caregiver, int] = {c: 0 for c in INDIVIDUALS}

        for period, split in segments:
            if month not in split:
                continue
            calendar_days, days = split[month]
            fraction = Decimal('1') if calendar_days >= length else Decimal(calendar_days) / Decimal(length)
            covered += calendar_days
            is_standard = period.tier.pool_tier is BenefitTier.STANDARD

            if period.caregiver is Caregiver.BOTH:
                for member in INDIVIDUALS:
                    benefit_income += rates[member].base_rate_for(period.tier) * days
                    top_up_income += rates[member].top_up_for(period.tier) * days
                    benefit_days[member] += days
                    if is_standard:
                        standard_days[member] += days
                days_by_tier[period.tier] += 2 * days
                continue

            if period.tier is BenefitTier.NONE:
                for member in INDIVIDUALS:
                    wage_income += rates[member].net_monthly_income * fraction
                days_by_tier[BenefitTier.NONE] += calendar_days
                continue

            caregiver = period.caregiver
            benefit_income += rates[caregiver].base_rate_for(period.tier) * days
            top_up_income += rates[caregiver].top_up_for(period.tier) * days
            wage_income += rates[caregiver.other].net_monthly_income * fraction
            days_by_tier[period.tier] += days
            leave_days[caregiver] += calendar_days
            benefit_days[caregiver] += days
            exclusive_days[caregiver] += days
            if is_standard:
                standard_days[caregiver] += days

        benefit_income = quantize_money(benefit_income)
        top_up_income = quantize_money(top_up_income)
        wage_income = quantize_money(wage_income)

        return MonthlyBreakdown(
            month=month,
            month_length=length,
            covered_days=covered,
            benefit_income=benefit_income,
            employer_top_up_income=top_up_income,
            wage_income=wage_income,
            total_income=benefit_income + top_up_income + wage_income,
            days_by_tier=dict(days_by_tier),
            leave_days_by_caregiver=leave_days,
            benefit_days_by_caregiver=benefit_days,
            standard_days_by_caregiver=standard_days,
            weekly_days_by_caregiver={
                c: weekly_for(exclusive_days[c], leave_days[c]) for c in INDIVIDUALS
            },
        )


def summarize_lowest_full_month(breakdowns: Sequence[MonthlyBreakdown]) -> Optional[IncomeSummary]:
    """
    Lowest-income fully covered month

    Months where both caregivers took exclusive leave are transitions and
    are skipped. Incomes within 0.5 of each other tie; the earliest wins.
    """
    lowest: Optional[MonthlyBreakdown] = None
    for breakdown in breakdowns:
        if not breakdown.is_full_month or breakdown.both_took_leave:
            continue
        if lowest is None or breakdown.total_income < lowest.total_income - TIE_TOLERANCE:
            lowest = breakdown

    if lowest is None:
        return None
    return IncomeSummary(
        month=lowest.month,
        income=lowest.total_income,
        label=month_label(lowest.month),
    )
