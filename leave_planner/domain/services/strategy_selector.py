"""
STRATEGY SELECTOR
Entry point of the planning engine

RESPONSIBILITIES:
- Sanitize degenerate input
- Build a fresh AllocationContext per candidate
- Run synthesizer → top-up engine → sequencer → aggregator
- Pick the best result per strategy

RULES:
❌ No exceptions to the caller (errors become warnings)
❌ No state shared between candidates
✅ Minimize-days: one run at the requested floor
✅ Maximize-income: best by total income, then days used, then average month
"""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from leave_planner.domain.exceptions import PlannerError
from leave_planner.domain.models import (
    AllocationContext,
    BenefitRules,
    BenefitTier,
    Caregiver,
    CaregiverProfile,
    INDIVIDUALS,
    LeavePeriod,
    MonthlyBreakdown,
    OptimizationResult,
    PlanRequest,
    POOL_TIERS,
    StrategyCandidate,
    StrategyKind,
)
from leave_planner.domain.services.day_pool_allocator import allocate_day_pools
from leave_planner.domain.services.monthly_aggregator import (
    MonthlyAggregator,
    summarize_lowest_full_month,
)
from leave_planner.domain.services.period_synthesizer import PeriodSynthesizer
from leave_planner.domain.services.rate_calculator import (
    calculate_available_income,
    calculate_daily_rates,
)
from leave_planner.domain.services.timeline_sequencer import TimelineSequencer
from leave_planner.domain.services.top_up_engine import TopUpEngine
from leave_planner.utils.dates import (
    add_fractional_months,
    inclusive_days,
    iter_months,
    month_end,
    overlap,
)
from leave_planner.utils.numbers import (
    ZERO,
    quantize_money,
    round_half_up,
    safe_float,
    span_for_days,
    to_decimal,
)

logger = logging.getLogger(__name__)

# Income targets tried by the maximize strategy, as multiples of combined income
MAXIMIZE_TARGETS = (
    ("net", Decimal('1.2')),
    ("net", Decimal('1')),
    ("available", Decimal('1.2')),
    ("available", Decimal('1')),
    ("net", Decimal('1.5')),
)

STRATEGY_TEXT = {
    StrategyKind.MINIMIZE_DAYS: (
        "Save days",
        "Keeps household income at the floor while using as few benefit days as possible.",
    ),
    StrategyKind.MAXIMIZE_INCOME: (
        "Maximize income",
        "Uses benefit days to keep household income as high as possible.",
    ),
}


# ======================
# Input sanitation
# ======================

def _clean_months(value) -> float:
    months = safe_float(value)
    return months if months > 0 else 0.0


def _clean_profile(profile: CaregiverProfile) -> CaregiverProfile:
    income = to_decimal(profile.gross_monthly_income)
    tax = to_decimal(profile.tax_rate)
    return CaregiverProfile(
        gross_monthly_income=max(ZERO, income),
        has_employer_top_up=bool(profile.has_employer_top_up),
        tax_rate=min(Decimal('100'), max(ZERO, tax)),
    )


def sanitize_request(request: PlanRequest) -> PlanRequest:
    """
    Clamp degenerate input to safe values

    Non-finite or negative numbers become zero, the weekly day count is
    rounded half up and clamped to 1..7, tax rates to 0..100. A missing
    start date becomes today.
    """
    weekly = safe_float(request.weekly_days)
    return PlanRequest(
        caregiver_1=_clean_profile(request.caregiver_1),
        caregiver_2=_clean_profile(request.caregiver_2),
        total_months=_clean_months(request.total_months),
        caregiver_1_months=_clean_months(request.caregiver_1_months),
        caregiver_2_months=_clean_months(request.caregiver_2_months),
        income_floor=max(ZERO, to_decimal(request.income_floor)),
        weekly_days=min(7, max(1, round_half_up(Fraction(weekly)))),
        simultaneous_months=_clean_months(request.simultaneous_months),
        start_date=request.start_date or date.today(),
        caregiver_1_cutoff=request.caregiver_1_cutoff,
        caregiver_2_cutoff=request.caregiver_2_cutoff,
    )


# ======================
# Context
# ======================

def _calendar_cap(months: float) -> int:
    return int((Decimal(str(months)) * Decimal('30')).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _month_owner_map(
    plan_start: date,
    plan_end: date,
    earliest: Dict[Caregiver, date],
    window_end: Dict[Caregiver, date],
) -> Dict[date, Caregiver]:
    """Caregiver whose preferred window covers most of each month (ties → caregiver 1)"""
    owners: Dict[date, Caregiver] = {}
    if plan_end <= plan_start:
        return owners
    last_day = plan_end - timedelta(days=1)
    for month in iter_months(plan_start, last_day):
        covered = {}
        for caregiver in INDIVIDUALS:
            window_last = window_end[caregiver] - timedelta(days=1)
            span = overlap(month, month_end(month), earliest[caregiver], window_last)
            covered[caregiver] = inclusive_days(*span) if span else 0
        first, second = INDIVIDUALS
        owners[month] = second if covered[second] > covered[first] else first
    return owners


def build_context(
    request: PlanRequest,
    candidate: StrategyCandidate,
    rules: BenefitRules,
) -> AllocationContext:
    """
    Build a fresh AllocationContext for one candidate

    The plan runs from the start date for the total months plus the
    simultaneous months (end exclusive). Both caregivers open with the
    shared period, then the simultaneous window, then caregiver 1's
    preferred window, then caregiver 2's.
    """
    sequencing = rules.sequencing
    plan_start = request.start_date or date.today()
    plan_end = add_fractional_months(plan_start, request.total_months + request.simultaneous_months)

    shared_span = span_for_days(sequencing.shared_initial_days, sequencing.shared_initial_weekly_days)
    shared_end = min(plan_end, plan_start + timedelta(days=shared_span))

    simultaneous_start: Optional[date] = None
    simultaneous_end: Optional[date] = None
    if request.simultaneous_months > 0:
        simultaneous_start = shared_end
        simultaneous_end = min(plan_end, add_fractional_months(shared_end, request.simultaneous_months))
        if simultaneous_end <= simultaneous_start:
            simultaneous_start = simultaneous_end = None

    first, second = INDIVIDUALS
    months = {c: request.preferred_months(c) for c in INDIVIDUALS}
    earliest = {first: simultaneous_end or shared_end}
    window_end = {first: add_fractional_months(earliest[first], months[first])}
    earliest[second] = window_end[first]
    window_end[second] = add_fractional_months(earliest[second], months[second])

    return AllocationContext(
        rules=rules,
        strategy=candidate.strategy,
        profiles={c: request.profile(c) for c in INDIVIDUALS},
        rates={c: calculate_daily_rates(request.profile(c), rules) for c in INDIVIDUALS},
        pools=allocate_day_pools(months[first], months[second], rules),
        income_floor=candidate.target_income,
        plan_start=plan_start,
        plan_end=plan_end,
        weekly_days=candidate.weekly_days,
        preferred_months=months,
        calendar_caps={c: _calendar_cap(months[c]) for c in INDIVIDUALS},
        earliest_start=earliest,
        window_end=window_end,
        cutoffs={c: request.cutoff(c) for c in INDIVIDUALS},
        simultaneous_start=simultaneous_start,
        simultaneous_end=simultaneous_end,
        prioritize_employer_top_up=candidate.prioritize_employer_top_up,
        month_owner=_month_owner_map(plan_start, plan_end, earliest, window_end),
    )


def _rank(result: OptimizationResult) -> Tuple[Decimal, int, Decimal]:
    return result.total_income, result.days_used, result.average_monthly_income


class StrategySelector:
    """
    Strategy Selector
    Runs the pipeline per candidate and keeps the best result per strategy
    """

    def __init__(
        self,
        rules: BenefitRules,
        max_iterations: int = 8,
        max_passes_per_month: int = 6,
    ):
        """
        Initialize strategy selector

        Args:
            rules: Benefit rules
            max_iterations: Top-up fixed-point scan limit
            max_passes_per_month: Top-up placements per month and scan
        """
        self.rules = rules
        self.max_iterations = max_iterations
        self.max_passes_per_month = max_passes_per_month

    def optimize(self, request: PlanRequest) -> List[OptimizationResult]:
        """
        Compute one plan per strategy

        Returns:
            [minimize-days result, maximize-income result]
        """
        request = sanitize_request(request)
        logger.info(
            f"Optimizing plan: {request.total_months} months "
            f"({request.caregiver_1_months}/{request.caregiver_2_months}), "
            f"floor {request.income_floor}, {request.weekly_days} days/week"
        )

        minimize = self.run_candidate(request, self.minimize_candidate(request))

        best: Optional[OptimizationResult] = None
        for candidate in self.maximize_candidates(request):
            result = self.run_candidate(request, candidate)
            if best is None or _rank(result) > _rank(best):
                best = result

        return [minimize, best]

    def minimize_candidate(self, request: PlanRequest) -> StrategyCandidate:
        request = sanitize_request(request)
        return StrategyCandidate(
            strategy=StrategyKind.MINIMIZE_DAYS,
            target_income=request.income_floor,
            prioritize_employer_top_up=False,
            weekly_days=request.weekly_days,
        )

    def maximize_candidates(self, request: PlanRequest) -> List[StrategyCandidate]:
        """Income targets (never below the floor) × employer top-up priority"""
        request = sanitize_request(request)
        profiles = (request.caregiver_1, request.caregiver_2)
        combined = {
            "net": sum((calculate_daily_rates(p, self.rules).net_monthly_income for p in profiles), ZERO),
            "available": sum((calculate_available_income(p, self.rules) for p in profiles), ZERO),
        }
        targets = sorted({
            quantize_money(max(request.income_floor, combined[base] * factor))
            for base, factor in MAXIMIZE_TARGETS
        })
        return [
            StrategyCandidate(
                strategy=StrategyKind.MAXIMIZE_INCOME,
                target_income=target,
                prioritize_employer_top_up=prioritize,
                weekly_days=request.weekly_days,
            )
            for target in targets
            for prioritize in (False, True)
        ]

    def run_candidate(self, request: PlanRequest, candidate: StrategyCandidate) -> OptimizationResult:
        """
        Run the full pipeline for one candidate

        Safe to call concurrently: every call builds its own context.
        """
        request = sanitize_request(request)
        try:
            return self._run(request, candidate)
        except (PlannerError, ValueError) as e:
            logger.error(
                f"Candidate {candidate.strategy.value} @ {candidate.target_income} failed: {e}",
                exc_info=True,
            )
            return self._empty_result(candidate, [f"The plan could not be computed: {e}"])

    def _run(self, request: PlanRequest, candidate: StrategyCandidate) -> OptimizationResult:
        context = build_context(request, candidate, self.rules)
        engine = TopUpEngine(self.rules, self.max_iterations, self.max_passes_per_month)

        base = PeriodSynthesizer(context).build_base_plan()
        outcome = engine.run(context, base)
        sequenced = TimelineSequencer(context).sequence(outcome.periods)
        breakdowns = MonthlyAggregator(context).aggregate(sequenced.periods)
        for warning in engine.deficit_warnings(context, breakdowns):
            context.warn(warning)

        result = self._build_result(context, candidate, sequenced.periods, breakdowns, outcome.converged)
        logger.info(
            f"Candidate {candidate.strategy.value} @ {candidate.target_income} "
            f"(prioritize={candidate.prioritize_employer_top_up}): "
            f"income {result.total_income}, {result.days_used} days, {len(result.warnings)} warnings"
        )
        return result

    def _build_result(
        self,
        context: AllocationContext,
        candidate: StrategyCandidate,
        periods: Sequence[LeavePeriod],
        breakdowns: Sequence[MonthlyBreakdown],
        converged: bool,
    ) -> OptimizationResult:
        quotas = self.rules.day_quotas
        quota = {BenefitTier.STANDARD: quotas.standard_days, BenefitTier.MINIMUM: quotas.minimum_days}
        remaining = {
            tier: sum(context.pools[c].available(tier) for c in INDIVIDUALS) for tier in POOL_TIERS
        }
        used = {tier: quota[tier] - remaining[tier] for tier in POOL_TIERS}

        total_income = sum((b.total_income for b in breakdowns), ZERO)
        covered = sum(b.covered_days for b in breakdowns)
        average = ZERO
        if covered > 0:
            average = quantize_money(total_income / Decimal(covered) * Decimal('30'))

        title, description = STRATEGY_TEXT[candidate.strategy]
        return OptimizationResult(
            strategy=candidate.strategy,
            title=title,
            description=description,
            periods=tuple(periods),
            total_income=quantize_money(total_income),
            days_used_by_tier=used,
            days_remaining_by_tier=remaining,
            days_used=sum(used.values()),
            days_saved=sum(remaining.values()),
            average_monthly_income=average,
            warnings=tuple(context.warnings),
            monthly_breakdown=tuple(breakdowns),
            lowest_full_month=summarize_lowest_full_month(breakdowns),
            converged=converged,
            target_income=candidate.target_income,
            prioritized_employer_top_up=candidate.prioritize_employer_top_up,
        )

    def _empty_result(self, candidate: StrategyCandidate, warnings: List[str]) -> OptimizationResult:
        quotas = self.rules.day_quotas
        title, description = STRATEGY_TEXT[candidate.strategy]
        return OptimizationResult(
            strategy=candidate.strategy,
            title=title,
            description=description,
            periods=(),
            total_income=Decimal('0.00'),
            days_used_by_tier={BenefitTier.STANDARD: 0, BenefitTier.MINIMUM: 0},
            days_remaining_by_tier={
                BenefitTier.STANDARD: quotas.standard_days,
                BenefitTier.MINIMUM: quotas.minimum_days,
            },
            days_used=0,
            days_saved=quotas.total_days,
            average_monthly_income=Decimal('0.00'),
            warnings=tuple(warnings),
            converged=False,
            target_income=candidate.target_income,
            prioritized_employer_top_up=candidate.prioritize_employer_top_up,
        )
