"""
PERIOD SYNTHESIZER
Turn (caregiver, tier, days, weekly days) requests into dated LeavePeriods

RESPONSIBILITIES:
- Place periods on a single timeline (one occupant at a time)
- Shared initial period and optional simultaneous window
- Lay out each caregiver's preferred window in tier order
- Price periods and merge adjacent equivalents

RULES:
❌ No period starts before the caregiver's earliest allowed start
❌ No period reaches a caregiver's cutoff date or the plan end
✅ Pools are charged with the days actually kept
✅ Benefit days scaled by the kept calendar share when trimmed
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from leave_planner.domain.models import (
    AllocationContext,
    BenefitTier,
    Caregiver,
    Filler,
    INDIVIDUALS,
    LeavePeriod,
    Original,
    Provenance,
    SharedInitial,
    TopUp,
)
from leave_planner.domain.services.tier_rules import choose_tier
from leave_planner.utils.dates import month_label
from leave_planner.utils.numbers import (
    ZERO,
    quantize_money,
    scale_days,
    span_for_days,
    weekly_for,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodRequest:
    """Request for one dated period"""
    caregiver: Caregiver
    tier: BenefitTier
    benefit_days: int
    weekly_days: int
    earliest: Optional[date] = None
    end: Optional[date] = None
    funder: Optional[Caregiver] = None
    provenance: Provenance = Original()


# ======================
# Pricing
# ======================

def price_period(
    context: AllocationContext,
    caregiver: Caregiver,
    tier: BenefitTier,
    start: date,
    end: date,
    benefit_days: int,
    weekly_days: int,
    provenance: Provenance,
    needs_sequencing: bool = False,
    anchor_month: Optional[date] = None,
) -> LeavePeriod:
    """
    Build a priced LeavePeriod

    Daily income is the household total over the span divided by the span:
    benefit paid on benefit days plus the working caregiver's net wage on
    every calendar day. Fillers count both wages; shared periods pay both
    caregivers and no wage.
    """
    span = Decimal((end - start).days + 1)
    days = Decimal(benefit_days)

    if caregiver is Caregiver.BOTH:
        daily_benefit = sum((context.rates[c].rate_for(tier) for c in INDIVIDUALS), ZERO)
        total = daily_benefit * days
    elif tier is BenefitTier.NONE:
        daily_benefit = ZERO
        total = sum((context.rates[c].net_daily_income for c in INDIVIDUALS), ZERO) * span
    else:
        daily_benefit = context.rates[caregiver].rate_for(tier)
        total = daily_benefit * days + context.rates[caregiver.other].net_daily_income * span

    return LeavePeriod(
        caregiver=caregiver,
        start=start,
        end=end,
        tier=tier,
        benefit_days=benefit_days,
        daily_benefit=quantize_money(daily_benefit),
        daily_income=quantize_money(total / span),
        weekly_days=weekly_days,
        provenance=provenance,
        needs_sequencing=needs_sequencing,
        anchor_month=anchor_month,
    )


def resize_period(
    context: AllocationContext,
    period: LeavePeriod,
    start: date,
    end: date,
    benefit_days: int,
    needs_sequencing: Optional[bool] = None,
) -> LeavePeriod:
    """Re-price *period* over new dates and day count (pools untouched)"""
    span = (end - start).days + 1
    weekly = 0 if period.tier is BenefitTier.NONE else weekly_for(benefit_days, span)
    return price_period(
        context,
        period.caregiver,
        period.tier,
        start,
        end,
        benefit_days,
        weekly,
        period.provenance,
        needs_sequencing=period.needs_sequencing if needs_sequencing is None else needs_sequencing,
        anchor_month=period.anchor_month,
    )


def make_filler(context: AllocationContext, caregiver: Caregiver, start: date, end: date) -> LeavePeriod:
    """Uncovered span, both caregivers working"""
    return price_period(context, caregiver, BenefitTier.NONE, start, end, 0, 0, Filler())


def warn_cutoff(context: AllocationContext, caregiver: Caregiver) -> None:
    last_day = context.last_allowed_day(caregiver)
    context.warn(f"{caregiver.label} leave is cut short on {last_day.isoformat()} by a cutoff date")


def refund_period_days(context: AllocationContext, period: LeavePeriod, days: int) -> None:
    """Return *days* of *period* to the pool(s) that paid for them"""
    if days <= 0 or period.tier.pool_tier is None:
        return
    if period.caregiver is Caregiver.BOTH:
        for member in INDIVIDUALS:
            context.pools[member].refund(period.tier, days)
        return
    funder = period.funder
    context.pools[funder].refund(period.tier, days, by_owner=funder is period.caregiver)


def charge_period_days(
    context: AllocationContext,
    caregiver: Caregiver,
    funder: Caregiver,
    tier: BenefitTier,
    days: int,
) -> None:
    """Draw *days* from the pool(s) paying for a period"""
    if days <= 0 or tier.pool_tier is None:
        return
    if caregiver is Caregiver.BOTH:
        for member in INDIVIDUALS:
            context.pools[member].consume(tier, days)
        return
    context.pools[funder].consume(tier, days, by_owner=funder is caregiver)


# ======================
# Merging
# ======================

def _same_provenance(a: LeavePeriod, b: LeavePeriod) -> bool:
    return a.provenance.kind == b.provenance.kind and a.transferred_from == b.transferred_from


def _mergeable(context: AllocationContext, a: LeavePeriod, b: LeavePeriod) -> bool:
    tolerance = context.rules.sequencing.merge_tolerance
    return (
        a.end + timedelta(days=1) == b.start
        and a.caregiver is b.caregiver
        and a.tier is b.tier
        and a.weekly_days == b.weekly_days
        and not a.needs_sequencing
        and not b.needs_sequencing
        and _same_provenance(a, b)
        and abs(a.daily_income - b.daily_income) <= tolerance
        and abs(a.daily_benefit - b.daily_benefit) <= tolerance
    )


def merge_adjacent(context: AllocationContext, periods: Sequence[LeavePeriod]) -> List[LeavePeriod]:
    """Merge back-to-back periods that differ only by rounding"""
    merged: List[LeavePeriod] = []
    for period in sorted(periods, key=lambda p: (p.start, p.end)):
        if merged and _mergeable(context, merged[-1], period):
            previous = merged.pop()
            merged.append(price_period(
                context,
                previous.caregiver,
                previous.tier,
                previous.start,
                period.end,
                previous.benefit_days + period.benefit_days,
                previous.weekly_days,
                previous.provenance,
            ))
        else:
            merged.append(period)
    return merged


class PeriodSynthesizer:
    """
    Period Synthesizer
    Places periods on the household timeline in request order
    """

    def __init__(self, context: AllocationContext):
        self.context = context
        self._timeline_end: Optional[date] = None

    # ======================
    # Single period
    # ======================

    def next_free_day(self) -> date:
        if self._timeline_end is None:
            return self.context.plan_start
        return self._timeline_end + timedelta(days=1)

    def synthesize_period(self, request: PeriodRequest) -> Optional[LeavePeriod]:
        """
        Place one period after everything already placed

        Args:
            request: Caregiver, tier, days, weekly days and optional bounds

        Returns:
            The placed period, or None when nothing fits
        """
        context = self.context
        caregiver = request.caregiver
        days = request.benefit_days
        if days <= 0 or request.tier.pool_tier is None:
            return None

        earliest = request.earliest
        if earliest is None:
            earliest = context.plan_start if caregiver is Caregiver.BOTH else context.earliest_start[caregiver]
        start = max(earliest, self.next_free_day(), context.plan_start)

        if request.end is not None:
            end = request.end
        else:
            end = start + timedelta(days=span_for_days(days, request.weekly_days) - 1)
        if end < start:
            return None
        full_span = (end - start).days + 1

        last_day = context.last_allowed_day(caregiver)
        if end > last_day:
            if last_day < context.last_day:
                warn_cutoff(context, caregiver)
            end = last_day
        if end < start:
            return None

        kept = (end - start).days + 1
        days = scale_days(days, kept, full_span)

        funder = request.funder or caregiver
        if caregiver is Caregiver.BOTH:
            limit = min(context.pools[c].available(request.tier) for c in INDIVIDUALS)
        elif funder is caregiver:
            limit = context.pools[funder].available(request.tier)
        else:
            limit = context.pools[funder].transferable(request.tier)
        days = min(days, limit)
        if days <= 0:
            return None

        charge_period_days(context, caregiver, funder, request.tier, days)

        provenance = request.provenance
        if funder is not caregiver and isinstance(provenance, Original):
            # Transfers are recorded through TopUp provenance only
            provenance = TopUp(transferred_from=funder)

        period = price_period(
            context,
            caregiver,
            request.tier,
            start,
            end,
            days,
            weekly_for(days, kept),
            provenance,
        )
        if request.tier.pool_tier is BenefitTier.STANDARD:
            context.record_standard_days(caregiver, days)

        self._timeline_end = end
        return period

    # ======================
    # Fixed shared periods
    # ======================

    def synthesize_shared_initial(self) -> Optional[LeavePeriod]:
        """Both caregivers off together at plan start (Standard tier)"""
        context = self.context
        sequencing = context.rules.sequencing
        days = min(
            [sequencing.shared_initial_days]
            + [context.pools[c].available(BenefitTier.STANDARD) for c in INDIVIDUALS]
        )
        if days <= 0 or context.plan_days <= 0:
            return None

        period = self.synthesize_period(PeriodRequest(
            caregiver=Caregiver.BOTH,
            tier=BenefitTier.STANDARD,
            benefit_days=days,
            weekly_days=sequencing.shared_initial_weekly_days,
            earliest=context.plan_start,
            provenance=SharedInitial(),
        ))
        return period

    def synthesize_simultaneous(self) -> Optional[LeavePeriod]:
        """Both caregivers off together for the requested window"""
        context = self.context
        if context.simultaneous_start is None or context.simultaneous_end is None:
            return None
        span = (context.simultaneous_end - context.simultaneous_start).days
        if span <= 0:
            return None

        wanted = span * context.weekly_days // 7
        for tier in (BenefitTier.STANDARD, BenefitTier.MINIMUM):
            available = min(context.pools[c].available(tier) for c in INDIVIDUALS)
            if available <= 0 or wanted <= 0:
                continue
            days = min(wanted, available)
            end = context.simultaneous_end - timedelta(days=1) if days == wanted else None
            return self.synthesize_period(PeriodRequest(
                caregiver=Caregiver.BOTH,
                tier=tier,
                benefit_days=days,
                weekly_days=context.weekly_days,
                earliest=context.simultaneous_start,
                end=end,
            ))
        return None

    # ======================
    # Caregiver blocks
    # ======================

    def synthesize_caregiver_block(self, caregiver: Caregiver) -> List[LeavePeriod]:
        """
        Lay out a caregiver's preferred window

        Employer top-up months come first when the agreement applies, then
        Standard, then Minimum. Only the caregiver's own pool is drawn here;
        transfers are left to the top-up engine.
        """
        context = self.context
        window_end = min(context.window_end[caregiver], context.plan_end)
        cursor = max(context.earliest_start[caregiver], self.next_free_day())
        periods: List[LeavePeriod] = []

        while cursor < window_end:
            choice = choose_tier(context, caregiver, allow_transfer=False)
            if choice is None:
                context.warn(
                    f"{caregiver.label} has no benefit days left from {month_label(cursor)}; "
                    f"the rest of the preferred window is unpaid"
                )
                break

            tier = context.paid_tier(caregiver, choice.tier, cursor)
            segment_end = window_end
            weekly = context.weekly_days
            if tier is BenefitTier.EMPLOYER_TOP_UP:
                segment_end = min(segment_end, context.top_up_window(caregiver)[1])
                if context.prioritize_employer_top_up:
                    weekly = 7

            span = (segment_end - cursor).days
            wanted = span * weekly // 7
            if wanted <= 0:
                break
            days = min(wanted, context.pools[caregiver].available(choice.tier))
            end = segment_end - timedelta(days=1) if days == wanted else None

            period = self.synthesize_period(PeriodRequest(
                caregiver=caregiver,
                tier=tier,
                benefit_days=days,
                weekly_days=weekly,
                earliest=cursor,
                end=end,
            ))
            if period is None:
                break
            periods.append(period)
            cursor = period.end + timedelta(days=1)

        return periods

    def build_base_plan(self) -> List[LeavePeriod]:
        """Shared start, simultaneous window, then each caregiver's block"""
        periods: List[LeavePeriod] = []
        for period in (self.synthesize_shared_initial(), self.synthesize_simultaneous()):
            if period is not None:
                periods.append(period)
        for caregiver in INDIVIDUALS:
            periods.extend(self.synthesize_caregiver_block(caregiver))

        logger.debug(f"Base plan: {len(periods)} periods")
        return periods

    def merge_adjacent(self, periods: Sequence[LeavePeriod]) -> List[LeavePeriod]:
        return merge_adjacent(self.context, periods)
