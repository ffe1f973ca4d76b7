"""
MINIMUM-INCOME TOP-UP ENGINE
Close monthly household income shortfalls with extra leave days

RESPONSIBILITIES:
- Detect fully covered months below the income floor
- Pick the owning caregiver and the tier (chronological Standard rule)
- Carve a floating top-up period out of the owner's month portion
- Escalate existing top-ups toward 7 days/week when still short
- Report persistent shortfalls as warnings

RULES:
❌ No exceptions for infeasible months (warnings only)
❌ No unbounded loops (passes, escalations and scans are capped)
❌ Reserved Standard days never transferred
❌ No Minimum top-up before the Standard threshold is met on the calendar
✅ Calendar cap relaxed only when the shortfall is otherwise unresolvable
✅ Repeat scans until one adds no days (fixed point)
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional, Sequence, Tuple

from leave_planner.domain.models import (
    AllocationContext,
    BenefitRules,
    BenefitTier,
    Caregiver,
    INDIVIDUALS,
    LeavePeriod,
    MonthlyBreakdown,
    Original,
    TopUp,
)
from leave_planner.domain.services.monthly_aggregator import MonthlyAggregator
from leave_planner.domain.services.period_synthesizer import (
    charge_period_days,
    make_filler,
    price_period,
    resize_period,
)
from leave_planner.domain.services.tier_rules import TierChoice, choose_tier, drawable_days
from leave_planner.utils.dates import (
    inclusive_days,
    iter_months,
    month_end,
    month_label,
    month_length,
)
from leave_planner.utils.numbers import (
    ZERO,
    ceil_days,
    quantize_money,
    span_for_days,
    split_days,
    weekly_for,
)

logger = logging.getLogger(__name__)

SHORTFALL_TOLERANCE = Decimal('0.5')


@dataclass(frozen=True)
class TopUpOutcome:
    """Result of the fixed-point top-up iteration"""
    periods: Tuple[LeavePeriod, ...]
    iterations: int
    converged: bool
    added_days: int
    escalated_days: int


def _sort_key(period: LeavePeriod):
    return (period.start, period.needs_sequencing, period.end)


def charged_days(periods: Sequence[LeavePeriod], caregiver: Caregiver) -> int:
    """Benefit days on *caregiver*'s own (exclusive) periods"""
    return sum(p.benefit_days for p in periods if p.caregiver is caregiver and not p.is_filler)


def standard_days_before(periods: Sequence[LeavePeriod], caregiver: Caregiver, day: date) -> int:
    """Standard-pool days *caregiver* (alone or with the other) has taken before *day*"""
    return sum(
        p.benefit_days
        for p in periods
        if p.caregiver in (caregiver, Caregiver.BOTH)
        and p.tier.pool_tier is BenefitTier.STANDARD
        and p.end < day
    )


def month_deficit(context: AllocationContext, breakdown: MonthlyBreakdown) -> Decimal:
    """Shortfall against the floor prorated by coverage; <= 0 means satisfied"""
    if context.income_floor <= ZERO or breakdown.month_length <= 0:
        return ZERO
    target = context.income_floor * Decimal(breakdown.covered_days) / Decimal(breakdown.month_length)
    return min(target, context.income_floor) - breakdown.total_income


class TopUpEngine:
    """
    Top-Up Engine
    Bounded fixed-point iteration over the monthly timeline
    """

    def __init__(
        self,
        rules: BenefitRules,
        max_iterations: int = 8,
        max_passes_per_month: int = 6,
    ):
        """
        Initialize top-up engine

        Args:
            rules: Benefit rules (weeks per month, escalation passes)
            max_iterations: Upper bound on full timeline scans
            max_passes_per_month: Upper bound on placements per month and scan
        """
        self.rules = rules
        self.max_iterations = max(1, max_iterations)
        self.max_passes_per_month = max(1, max_passes_per_month)

    # ======================
    # Fixed point
    # ======================

    def run(self, context: AllocationContext, periods: Sequence[LeavePeriod]) -> TopUpOutcome:
        """
        Top up every fully covered month short of the floor

        Args:
            context: Candidate context (pools and counters are mutated)
            periods: Base plan

        Returns:
            TopUpOutcome with floating top-ups marked for sequencing
        """
        current = sorted(periods, key=_sort_key)
        if context.income_floor <= ZERO:
            logger.debug("Income floor is zero, top-up pass skipped")
            return TopUpOutcome(tuple(current), 0, True, 0, 0)

        added_total = 0
        escalated_total = 0
        iterations = 0
        converged = False

        while iterations < self.max_iterations:
            iterations += 1
            current, added, escalated = self._scan(context, current)
            added_total += added
            escalated_total += escalated
            logger.debug(f"Top-up scan {iterations}: +{added} days, +{escalated} escalated")
            if added == 0 and escalated == 0:
                converged = True
                break

        if not converged:
            logger.warning(
                f"Top-up iteration stopped after {iterations} scans without converging "
                f"(floor {context.income_floor})"
            )

        logger.info(
            f"Top-up pass: {added_total} days added, {escalated_total} escalated, "
            f"{iterations} scans, converged={converged}"
        )
        return TopUpOutcome(tuple(current), iterations, converged, added_total, escalated_total)

    def _scan(
        self,
        context: AllocationContext,
        periods: List[LeavePeriod],
    ) -> Tuple[List[LeavePeriod], int, int]:
        """One chronological pass over the plan months"""
        aggregator = MonthlyAggregator(context)
        context.reset_chronology()
        added = 0
        escalated = 0

        for month in iter_months(context.plan_start, context.last_day):
            breakdown = aggregator.aggregate_month(periods, month)
            for caregiver in INDIVIDUALS:
                context.chronological_standard_days[caregiver] += breakdown.standard_days_by_caregiver[caregiver]

            if not breakdown.is_full_month:
                continue
            if month_deficit(context, breakdown) <= ZERO:
                continue

            periods, month_added, month_escalated = self._resolve_month(
                context, periods, month, aggregator
            )
            added += month_added
            escalated += month_escalated

        return periods, added, escalated

    # ======================
    # Per month
    # ======================

    def _resolve_month(
        self,
        context: AllocationContext,
        periods: List[LeavePeriod],
        month: date,
        aggregator: MonthlyAggregator,
    ) -> Tuple[List[LeavePeriod], int, int]:
        added = 0
        for _ in range(self.max_passes_per_month):
            breakdown = aggregator.aggregate_month(periods, month)
            deficit = month_deficit(context, breakdown)
            if deficit <= ZERO:
                break

            owner = self.choose_owner(context, breakdown)
            context.month_owner[month] = owner

            placed = None
            for ignore_cap in (False, True):
                for caregiver in (owner, owner.other):
                    placed = self._place_top_up(
                        context, periods, month, caregiver, deficit, breakdown, ignore_cap
                    )
                    if placed is not None:
                        break
                if placed is not None:
                    break

            if placed is None:
                logger.debug(f"{month_label(month)}: no top-up capacity left (short {deficit})")
                break
            periods, days = placed
            added += days

        escalated = 0
        breakdown = aggregator.aggregate_month(periods, month)
        if month_deficit(context, breakdown) > ZERO:
            periods, escalated = self._escalate(context, periods, month, aggregator)
        return periods, added, escalated

    def choose_owner(self, context: AllocationContext, breakdown: MonthlyBreakdown) -> Caregiver:
        """
        Caregiver who owns a month's top-ups

        More benefit days in the month wins; then the month owner map; then
        more preferred months remaining; then caregiver 1.
        """
        first, second = INDIVIDUALS
        days_first = breakdown.benefit_days_by_caregiver[first]
        days_second = breakdown.benefit_days_by_caregiver[second]
        if days_first != days_second:
            return first if days_first > days_second else second

        mapped = context.month_owner.get(breakdown.month)
        if mapped in INDIVIDUALS:
            return mapped

        remaining_first = context.remaining_months(first, breakdown.month)
        remaining_second = context.remaining_months(second, breakdown.month)
        if remaining_first != remaining_second:
            return first if remaining_first > remaining_second else second
        return first

    def _weekly_capacity(self, breakdown: MonthlyBreakdown, caregiver: Caregiver) -> int:
        """Extra benefit days the caregiver's weekly rhythm still allows this month"""
        used = breakdown.weekly_days_by_caregiver[caregiver]
        leave_days = breakdown.leave_days_by_caregiver[caregiver]
        if used >= 7 or leave_days <= 0:
            return 0
        raw = (
            Decimal(7 - used)
            * self.rules.sequencing.weeks_per_month
            * Decimal(leave_days)
            / Decimal(breakdown.month_length)
        )
        return int(raw.to_integral_value(rounding=ROUND_FLOOR))

    def _find_host(
        self,
        periods: Sequence[LeavePeriod],
        caregiver: Caregiver,
        month: date,
    ) -> Optional[Tuple[LeavePeriod, Tuple[int, int, int], Tuple[int, int, int]]]:
        """
        Caregiver's own fixed period with the most free days in *month*

        Returns:
            (host, calendar days before/in/after month, benefit days before/in/after)
        """
        first = month
        last = month_end(month)
        best = None
        best_free = 0
        for period in periods:
            if period.caregiver is not caregiver or period.needs_sequencing:
                continue
            if not isinstance(period.provenance, Original):
                continue
            if period.start > last or period.end < first:
                continue
            calendars = (
                inclusive_days(period.start, first - timedelta(days=1)),
                inclusive_days(max(period.start, first), min(period.end, last)),
                inclusive_days(last + timedelta(days=1), period.end),
            )
            days = tuple(split_days(period.benefit_days, calendars))
            free = calendars[1] - days[1]
            if free > best_free:
                best = (period, calendars, days)
                best_free = free
        return best

    def _place_top_up(
        self,
        context: AllocationContext,
        periods: List[LeavePeriod],
        month: date,
        caregiver: Caregiver,
        deficit: Decimal,
        breakdown: MonthlyBreakdown,
        ignore_cap: bool,
    ) -> Optional[Tuple[List[LeavePeriod], int]]:
        """Carve one floating top-up for *caregiver* out of their month portion"""
        choice = choose_tier(context, caregiver)
        if choice is None:
            return None
        found = self._find_host(periods, caregiver, month)
        if found is None:
            return None
        host, calendars, host_days = found

        segment_start = max(host.start, month)
        segment_end = min(host.end, month_end(month))
        in_month = calendars[1]
        free = in_month - host_days[1]

        tier = context.paid_tier(caregiver, choice.tier, segment_start)
        rate = context.rates[caregiver].rate_for(tier)
        if rate <= ZERO:
            return None

        cap_remaining = context.calendar_caps[caregiver] - charged_days(periods, caregiver)
        limits = [
            ceil_days(deficit / rate),
            self._weekly_capacity(breakdown, caregiver),
            free,
            drawable_days(context, choice),
        ]
        if not ignore_cap:
            limits.append(cap_remaining)
        days = min(limits)
        if days <= 0:
            return None

        weekly = context.weekly_days
        if context.prioritize_employer_top_up and tier is BenefitTier.EMPLOYER_TOP_UP:
            weekly = 7
        span = min(free, span_for_days(days, weekly))

        if choice.tier is BenefitTier.MINIMUM:
            slice_start = segment_end - timedelta(days=span - 1)
            slice_end = segment_end
            base_start, base_end = segment_start, slice_start - timedelta(days=1)
            # Own Standard may be held by later block periods; the count must
            # already be reached on the calendar before the slice.
            taken = standard_days_before(periods, caregiver, slice_start)
            if taken < context.chronological_threshold(caregiver):
                logger.debug(
                    f"{month_label(month)}: no Minimum top-up for {caregiver.label}, "
                    f"{taken} Standard days taken before {slice_start}"
                )
                return None
        else:
            slice_start = segment_start
            slice_end = segment_start + timedelta(days=span - 1)
            base_start, base_end = slice_end + timedelta(days=1), segment_end

        if days > max(0, cap_remaining):
            context.warn(
                f"{caregiver.label} goes beyond the preferred leave length in "
                f"{month_label(month)} to reach the income floor"
            )

        pieces = self._split_host(
            context, host, calendars, host_days, segment_start, segment_end, base_start, base_end
        )

        charge_period_days(context, caregiver, choice.funder, tier, days)
        if choice.tier is BenefitTier.STANDARD:
            context.record_standard_days(caregiver, days)

        top_up = price_period(
            context,
            caregiver,
            tier,
            slice_start,
            slice_end,
            days,
            weekly_for(days, span),
            TopUp(transferred_from=choice.funder if choice.is_transfer else None),
            needs_sequencing=True,
            anchor_month=month,
        )
        self._log_placement(month, top_up, choice)

        remaining = [p for p in periods if p is not host]
        return sorted(remaining + pieces + [top_up], key=_sort_key), days

    def _split_host(
        self,
        context: AllocationContext,
        host: LeavePeriod,
        calendars: Tuple[int, int, int],
        host_days: Tuple[int, int, int],
        segment_start: date,
        segment_end: date,
        base_start: date,
        base_end: date,
    ) -> List[LeavePeriod]:
        """Host pieces around the freed span, benefit days conserved"""
        bounds = []
        if calendars[0] > 0:
            bounds.append((host.start, segment_start - timedelta(days=1), host_days[0]))
        if base_end >= base_start:
            bounds.append((base_start, base_end, host_days[1]))
        if calendars[2] > 0:
            bounds.append((segment_end + timedelta(days=1), host.end, host_days[2]))

        pieces = []
        for start, end, days in bounds:
            if days > 0:
                pieces.append(resize_period(context, host, start, end, days))
            else:
                pieces.append(make_filler(context, host.caregiver, start, end))
        return pieces

    @staticmethod
    def _log_placement(month: date, period: LeavePeriod, choice: TierChoice) -> None:
        source = f" from {choice.funder.value}" if choice.is_transfer else ""
        logger.debug(
            f"{month_label(month)}: top-up {period.benefit_days} {period.tier.value} days "
            f"for {period.caregiver.value}{source} ({period.start} → {period.end})"
        )

    # ======================
    # Escalation
    # ======================

    def _escalate(
        self,
        context: AllocationContext,
        periods: List[LeavePeriod],
        month: date,
        aggregator: MonthlyAggregator,
    ) -> Tuple[List[LeavePeriod], int]:
        """Raise the month's top-ups toward 7 days/week inside their span"""
        periods = list(periods)
        escalated = 0

        for _ in range(self.rules.sequencing.max_escalation_passes):
            deficit = month_deficit(context, aggregator.aggregate_month(periods, month))
            if deficit <= ZERO:
                break

            progress = False
            for index, period in enumerate(periods):
                if not period.is_top_up or period.anchor_month != month:
                    continue
                room = period.calendar_days - period.benefit_days
                rate = context.rates[period.caregiver].rate_for(period.tier)
                if room <= 0 or rate <= ZERO:
                    continue

                pool = context.pools[period.funder]
                if period.transferred_from:
                    drawable = pool.transferable(period.tier)
                else:
                    drawable = pool.available(period.tier)
                extra = min(room, ceil_days(deficit / rate), drawable)
                if extra <= 0:
                    continue

                charge_period_days(context, period.caregiver, period.funder, period.tier, extra)
                if period.tier.pool_tier is BenefitTier.STANDARD:
                    context.record_standard_days(period.caregiver, extra)
                periods[index] = resize_period(
                    context, period, period.start, period.end, period.benefit_days + extra
                )
                escalated += extra
                progress = True
                deficit -= rate * extra

                if charged_days(periods, period.caregiver) > context.calendar_caps[period.caregiver]:
                    context.warn(
                        f"{period.caregiver.label} takes more days per week in {month_label(month)} "
                        f"than the preferred leave length allows"
                    )
                if deficit <= ZERO:
                    break

            if not progress:
                break

        return periods, escalated

    # ======================
    # Warnings
    # ======================

    def deficit_warnings(
        self,
        context: AllocationContext,
        breakdowns: Sequence[MonthlyBreakdown],
    ) -> List[str]:
        """
        Advisories for fully covered months still below the floor

        The worst month gets the shortfall and a remedy; every other short
        month gets a one-line notice.
        """
        if context.income_floor <= ZERO:
            return []

        short = []
        for breakdown in breakdowns:
            if not breakdown.is_full_month:
                continue
            shortfall = quantize_money(month_deficit(context, breakdown))
            if shortfall > SHORTFALL_TOLERANCE:
                short.append((breakdown, shortfall))
        if not short:
            return []

        worst, worst_shortfall = max(short, key=lambda item: (item[1], -item[0].month.toordinal()))
        owner = self.choose_owner(context, worst)
        warnings = [
            f"{month_label(worst.month)}: household income {worst.total_income:,.2f} is "
            f"{worst_shortfall:,.2f} below the floor of {context.income_floor:,.2f}. "
            f"Consider letting {owner.other.label} take more leave that month "
            f"or lowering the income floor."
        ]
        for breakdown, shortfall in short:
            if breakdown is worst:
                continue
            warnings.append(
                f"{month_label(breakdown.month)}: household income is {shortfall:,.2f} below the floor"
            )
        return warnings
