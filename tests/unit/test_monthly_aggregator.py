"""
Unit Tests for the monthly aggregator
"""

import pytest
from datetime import date
from decimal import Decimal

from leave_planner.domain.models import (
    BenefitTier,
    Caregiver,
    MonthlyBreakdown,
    Original,
    SharedInitial,
)
from leave_planner.domain.services.monthly_aggregator import (
    MonthlyAggregator,
    segment_days,
    summarize_lowest_full_month,
)
from leave_planner.domain.services.period_synthesizer import PeriodSynthesizer, make_filler, price_period

C1 = Caregiver.CAREGIVER_1
C2 = Caregiver.CAREGIVER_2


def _breakdown(month: date, total: str, covered: int = 30, both: bool = False) -> MonthlyBreakdown:
    return MonthlyBreakdown(
        month=month,
        month_length=30,
        covered_days=covered,
        benefit_income=Decimal('0'),
        employer_top_up_income=Decimal('0'),
        wage_income=Decimal(total),
        total_income=Decimal(total),
        days_by_tier={},
        leave_days_by_caregiver={C1: 10, C2: 10 if both else 0},
        benefit_days_by_caregiver={C1: 0, C2: 0},
        standard_days_by_caregiver={C1: 0, C2: 0},
        weekly_days_by_caregiver={C1: 0, C2: 0},
    )


@pytest.mark.unit
class TestMonthlyAggregator:

    def test_segment_days_split_across_months(self, make_context):
        context = make_context()
        period = price_period(
            context, C1, BenefitTier.STANDARD, date(2025, 3, 20), date(2025, 4, 10), 16, 5, Original()
        )
        assert segment_days(period) == {
            date(2025, 3, 1): (12, 9),
            date(2025, 4, 1): (10, 7),
        }

    def test_partial_month_prorates_wage(self, make_context):
        context = make_context()
        period = price_period(
            context, C1, BenefitTier.STANDARD, date(2025, 3, 20), date(2025, 4, 10), 16, 5, Original()
        )

        march = MonthlyAggregator(context).aggregate_month([period], date(2025, 3, 15))

        assert march.month == date(2025, 3, 1)
        assert march.covered_days == 12
        assert not march.is_full_month
        assert march.benefit_income == Decimal('4821.84')
        assert march.wage_income == Decimal('14903.23')
        assert march.total_income == Decimal('19725.07')
        assert march.benefit_days_by_caregiver[C1] == 9

    def test_full_month(self, make_context):
        context = make_context()
        period = price_period(
            context, C1, BenefitTier.STANDARD, date(2025, 3, 1), date(2025, 3, 31), 22, 5, Original()
        )

        march = MonthlyAggregator(context).aggregate_month([period], date(2025, 3, 1))

        assert march.is_full_month
        assert march.total_income == Decimal('50286.72')
        assert march.days_by_tier == {BenefitTier.STANDARD: 22}
        assert march.weekly_days_by_caregiver == {C1: 5, C2: 0}
        assert march.standard_days_by_caregiver[C1] == 22

    def test_shared_period_pays_both_without_wage(self, make_context):
        context = make_context()
        shared = price_period(
            context, Caregiver.BOTH, BenefitTier.STANDARD, date(2025, 1, 1), date(2025, 1, 14), 10, 5,
            SharedInitial(),
        )

        january = MonthlyAggregator(context).aggregate_month([shared], date(2025, 1, 1))

        assert january.benefit_income == Decimal('14107.60')
        assert january.wage_income == Decimal('0.00')
        assert january.days_by_tier == {BenefitTier.STANDARD: 20}
        assert january.benefit_days_by_caregiver == {C1: 10, C2: 10}
        assert not january.both_took_leave

    def test_filler_month_counts_both_wages(self, make_context):
        context = make_context()
        filler = make_filler(context, C2, date(2025, 6, 1), date(2025, 6, 30))

        june = MonthlyAggregator(context).aggregate_month([filler], date(2025, 6, 1))

        assert june.total_income == Decimal('59500.00')
        assert june.days_by_tier == {BenefitTier.NONE: 30}

    def test_aggregate_covers_every_plan_month(self, make_context):
        context = make_context()
        pools_before = {c: (p.standard, p.minimum) for c, p in context.pools.items()}
        periods = PeriodSynthesizer(context).build_base_plan()
        pools_after_plan = {c: (p.standard, p.minimum) for c, p in context.pools.items()}

        breakdowns = MonthlyAggregator(context).aggregate(periods)

        assert len(breakdowns) == 15
        assert breakdowns[0].month == date(2025, 1, 1)
        assert breakdowns[-1].month == date(2026, 3, 1)
        assert sum(b.covered_days for b in breakdowns) == context.plan_days
        assert {c: (p.standard, p.minimum) for c, p in context.pools.items()} == pools_after_plan
        assert pools_after_plan != pools_before


@pytest.mark.unit
class TestLowestFullMonth:

    def test_lowest_month(self):
        summary = summarize_lowest_full_month([
            _breakdown(date(2025, 2, 1), '45000.00'),
            _breakdown(date(2025, 3, 1), '47000.00'),
            _breakdown(date(2025, 4, 1), '44000.00'),
        ])
        assert summary.month == date(2025, 4, 1)
        assert summary.income == Decimal('44000.00')
        assert summary.label == "April 2025"

    def test_near_ties_keep_earliest(self):
        summary = summarize_lowest_full_month([
            _breakdown(date(2025, 2, 1), '45000.00'),
            _breakdown(date(2025, 3, 1), '44999.80'),
        ])
        assert summary.month == date(2025, 2, 1)

    def test_partial_and_transition_months_skipped(self):
        summary = summarize_lowest_full_month([
            _breakdown(date(2025, 2, 1), '10000.00', covered=12),
            _breakdown(date(2025, 3, 1), '20000.00', both=True),
            _breakdown(date(2025, 4, 1), '50000.00'),
        ])
        assert summary.month == date(2025, 4, 1)

    def test_no_full_month(self):
        assert summarize_lowest_full_month([]) is None
        assert summarize_lowest_full_month([_breakdown(date(2025, 2, 1), '1.00', covered=3)]) is None
