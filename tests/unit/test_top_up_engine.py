"""
Unit Tests for the minimum-income top-up engine
"""

import pytest
from collections import Counter
from datetime import date
from decimal import Decimal

from leave_planner.domain.models import BenefitTier, Caregiver, MonthlyBreakdown
from leave_planner.domain.services.monthly_aggregator import MonthlyAggregator
from leave_planner.domain.services.period_synthesizer import PeriodSynthesizer
from leave_planner.domain.services.top_up_engine import (
    TopUpEngine,
    month_deficit,
    standard_days_before,
)

C1 = Caregiver.CAREGIVER_1
C2 = Caregiver.CAREGIVER_2


def _run(context, rules, **kwargs):
    base = PeriodSynthesizer(context).build_base_plan()
    return TopUpEngine(rules, **kwargs).run(context, base)


def _days_by_anchor(periods):
    counter = Counter()
    for period in periods:
        if period.is_top_up:
            counter[period.anchor_month] += period.benefit_days
    return dict(counter)


@pytest.mark.unit
class TestTopUpEngine:

    def test_zero_floor_is_a_no_op(self, make_context, rules):
        context = make_context(income_floor=0)
        base = PeriodSynthesizer(context).build_base_plan()

        outcome = TopUpEngine(rules).run(context, base)

        assert outcome.converged
        assert outcome.iterations == 0
        assert outcome.added_days == 0
        assert list(outcome.periods) == sorted(base, key=lambda p: p.start)

    def test_reference_family_top_ups(self, make_context, rules):
        context = make_context()
        outcome = _run(context, rules)

        assert outcome.converged
        assert outcome.iterations == 2
        assert outcome.added_days == 30
        assert _days_by_anchor(outcome.periods) == {
            date(2025, 1, 1): 3,
            date(2025, 11, 1): 1,
            date(2025, 12, 1): 6,
            date(2026, 1, 1): 6,
            date(2026, 2, 1): 8,
            date(2026, 3, 1): 6,
        }
        assert context.pools[C1].standard == 0
        assert context.pools[C2].standard == 26

    def test_top_ups_float_inside_their_month(self, make_context, rules):
        context = make_context()
        outcome = _run(context, rules)

        top_ups = [p for p in outcome.periods if p.is_top_up]
        assert top_ups
        for period in top_ups:
            assert period.needs_sequencing
            assert period.start.replace(day=1) == period.anchor_month
            assert period.end.replace(day=1) == period.anchor_month
            assert period.benefit_days <= period.calendar_days
            assert period.tier is BenefitTier.STANDARD
            assert period.transferred_from is None

        december = next(p for p in top_ups if p.anchor_month == date(2025, 12, 1))
        assert december.caregiver is C2
        assert (december.start, december.end) == (date(2025, 12, 1), date(2025, 12, 9))

    def test_months_reach_floor_except_first(self, make_context, rules):
        context = make_context()
        outcome = _run(context, rules)

        breakdowns = MonthlyAggregator(context).aggregate(outcome.periods)
        short = [b.month for b in breakdowns if b.is_full_month and month_deficit(context, b) > 0]
        assert short == [date(2025, 1, 1)]

        november = next(b for b in breakdowns if b.month == date(2025, 11, 1))
        assert november.total_income == Decimal('45024.27')

    def test_timeline_stays_gapless_and_disjoint(self, make_context, rules):
        context = make_context()
        outcome = _run(context, rules)

        periods = sorted(outcome.periods, key=lambda p: p.start)
        assert periods[0].start == context.plan_start
        assert periods[-1].end == context.last_day
        for previous, current in zip(periods, periods[1:]):
            assert (current.start - previous.end).days == 1

    def test_iteration_cap_reports_non_convergence(self, make_context, rules):
        context = make_context()
        outcome = _run(context, rules, max_iterations=1)

        assert outcome.iterations == 1
        assert not outcome.converged
        assert outcome.added_days > 0

    def test_deficit_warnings_name_worst_month(self, make_context, rules):
        context = make_context()
        engine = TopUpEngine(rules)
        outcome = engine.run(context, PeriodSynthesizer(context).build_base_plan())
        breakdowns = MonthlyAggregator(context).aggregate(outcome.periods)

        warnings = engine.deficit_warnings(context, breakdowns)

        assert len(warnings) == 1
        assert warnings[0].startswith("January 2025: household income")
        assert "Consider letting Caregiver 2 take more leave that month" in warnings[0]

    def test_no_warnings_without_floor(self, make_context, rules):
        context = make_context(income_floor=0)
        engine = TopUpEngine(rules)
        breakdowns = MonthlyAggregator(context).aggregate(PeriodSynthesizer(context).build_base_plan())
        assert engine.deficit_warnings(context, breakdowns) == []


@pytest.mark.unit
class TestChronologicalStandardRule:
    """Minimum top-ups wait until enough Standard days lie behind them"""

    HIGH_FLOOR = dict(
        income_1=30000,
        income_2=55000,
        total_months=20,
        months_1=14,
        months_2=1,
        income_floor=70000,
        top_up_1=True,
        top_up_2=True,
    )

    def test_no_minimum_top_up_ahead_of_later_standard_block(self, make_context, rules):
        context = make_context(**self.HIGH_FLOOR)
        outcome = _run(context, rules)

        minimum_top_ups = [
            p for p in outcome.periods if p.is_top_up and p.tier is BenefitTier.MINIMUM
        ]
        for period in minimum_top_ups:
            taken = standard_days_before(outcome.periods, period.caregiver, period.start)
            assert taken >= context.chronological_threshold(period.caregiver)

    def test_first_minimum_day_follows_threshold(self, make_context, rules):
        context = make_context(**self.HIGH_FLOOR)
        outcome = _run(context, rules)

        for caregiver in (C1, C2):
            minimum = [
                p for p in outcome.periods
                if p.caregiver is caregiver and p.tier is BenefitTier.MINIMUM
            ]
            if not minimum:
                continue
            first = min(p.start for p in minimum)
            taken = standard_days_before(outcome.periods, caregiver, first)
            assert taken >= context.chronological_threshold(caregiver)

    def test_standard_days_before_counts_shared_periods(self, make_context, rules):
        context = make_context()
        base = PeriodSynthesizer(context).build_base_plan()

        assert standard_days_before(base, C1, context.plan_start) == 0
        after_shared = context.plan_start.replace(day=15)
        assert standard_days_before(base, C1, after_shared) == 10
        assert standard_days_before(base, C2, after_shared) == 10


@pytest.mark.unit
class TestOwnerAndDeficit:

    def _breakdown(self, days_1, days_2, covered=31, total='40000'):
        return MonthlyBreakdown(
            month=date(2025, 5, 1),
            month_length=31,
            covered_days=covered,
            benefit_income=Decimal('0'),
            employer_top_up_income=Decimal('0'),
            wage_income=Decimal(total),
            total_income=Decimal(total),
            days_by_tier={},
            leave_days_by_caregiver={C1: 31, C2: 0},
            benefit_days_by_caregiver={C1: days_1, C2: days_2},
            standard_days_by_caregiver={C1: days_1, C2: days_2},
            weekly_days_by_caregiver={C1: 5, C2: 0},
        )

    def test_more_benefit_days_owns_month(self, make_context, rules):
        context = make_context()
        engine = TopUpEngine(rules)
        assert engine.choose_owner(context, self._breakdown(5, 12)) is C2
        assert engine.choose_owner(context, self._breakdown(12, 5)) is C1

    def test_tie_uses_month_owner_map(self, make_context, rules):
        context = make_context()
        engine = TopUpEngine(rules)
        assert context.month_owner[date(2025, 5, 1)] is C1
        context.month_owner[date(2025, 5, 1)] = C2
        assert engine.choose_owner(context, self._breakdown(0, 0)) is C2

    def test_deficit_prorated_by_coverage(self, make_context):
        context = make_context()
        assert month_deficit(context, self._breakdown(0, 0, total='40000')) == Decimal('5000')
        partial = self._breakdown(0, 0, covered=0, total='0')
        assert month_deficit(context, partial) == Decimal('0')
        assert month_deficit(make_context(income_floor=0), self._breakdown(0, 0)) == Decimal('0')
