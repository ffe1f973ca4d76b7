"""
TIMELINE SEQUENCER
Merge fixed and floating periods into one gapless timeline

RESPONSIBILITIES:
- Walk a cursor from plan start to plan end
- Fill gaps before fixed periods with floating top-ups, else fillers
- Clamp, trim or drop periods at the cursor and at cutoffs (refunding days)
- Trailing fillers toward each caregiver's proportional share

RULES:
❌ No overlaps, no gaps
❌ No period (filler included) for a caregiver on or after their cutoff
✅ Every dropped or trimmed benefit day goes back to its pool
✅ Bounded filler passes
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from leave_planner.domain.models import (
    AllocationContext,
    Caregiver,
    INDIVIDUALS,
    LeavePeriod,
)
from leave_planner.domain.services.period_synthesizer import (
    make_filler,
    merge_adjacent,
    refund_period_days,
    resize_period,
    warn_cutoff,
)
from leave_planner.utils.numbers import scale_days

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class SequencingOutcome:
    """Final ordered timeline"""
    periods: Tuple[LeavePeriod, ...]
    fillers_added: int
    refunded_days: int
    stopped_at: Optional[date] = None


class TimelineSequencer:
    """
    Timeline Sequencer
    Single cursor walk, fixed periods keep their dates where possible
    """

    def __init__(self, context: AllocationContext):
        self.context = context
        self._refunded = 0
        self._fillers = 0

    def sequence(self, periods: Sequence[LeavePeriod]) -> SequencingOutcome:
        """
        Place every period on the timeline

        Args:
            periods: Fixed periods plus floating top-ups with tentative dates

        Returns:
            SequencingOutcome with merged, chronologically ordered periods
        """
        context = self.context
        self._refunded = 0
        self._fillers = 0

        fixed = sorted((p for p in periods if not p.needs_sequencing), key=lambda p: (p.start, p.end))
        floating = sorted((p for p in periods if p.needs_sequencing), key=lambda p: (p.start, p.end))
        placed: List[LeavePeriod] = []
        cursor = context.plan_start
        stopped_at: Optional[date] = None

        while fixed and cursor <= context.last_day:
            upcoming = fixed[0]
            if upcoming.start > cursor:
                gap_end = min(upcoming.start - ONE_DAY, context.last_day)
                candidate = next((f for f in floating if f.start <= upcoming.start), None)
                if candidate is not None:
                    floating.remove(candidate)
                    period = self._place_floating(candidate, cursor, gap_end)
                else:
                    preferred = [upcoming.caregiver] + [p.caregiver for p in placed[-1:]]
                    period = self._filler(cursor, gap_end, preferred)
                    if period is None:
                        stopped_at = cursor
                        break
                if period is not None:
                    placed.append(period)
                    cursor = period.end + ONE_DAY
                continue

            fixed.pop(0)
            period = self._place_fixed(upcoming, cursor, placed)
            if period is not None:
                placed.append(period)
                cursor = period.end + ONE_DAY

        if stopped_at is None:
            while floating and cursor <= context.last_day:
                period = self._place_floating(floating.pop(0), cursor, context.last_day)
                if period is not None:
                    placed.append(period)
                    cursor = period.end + ONE_DAY
            cursor, stopped_at = self._trailing_fillers(placed, cursor)

        for leftover in fixed + floating:
            self._drop(leftover)

        if stopped_at is not None:
            context.warn(
                f"Timeline ends on {(stopped_at - ONE_DAY).isoformat()} because neither caregiver "
                f"may take leave after their cutoff date"
            )

        merged = merge_adjacent(context, placed)
        logger.debug(
            f"Sequenced {len(merged)} periods, {self._fillers} fillers, {self._refunded} days refunded"
        )
        return SequencingOutcome(tuple(merged), self._fillers, self._refunded, stopped_at)

    # ======================
    # Placement
    # ======================

    def _drop(self, period: LeavePeriod) -> None:
        refund_period_days(self.context, period, period.benefit_days)
        self._refunded += period.benefit_days

    def _fit(self, period: LeavePeriod, start: date, end: date) -> Optional[LeavePeriod]:
        """Trim *period* to [start, end] and the caregiver's cutoff, refunding lost days"""
        last_allowed = self.context.last_allowed_day(period.caregiver)
        if end > last_allowed:
            if last_allowed < self.context.last_day:
                warn_cutoff(self.context, period.caregiver)
            end = last_allowed
        if end < start:
            self._drop(period)
            return None

        kept = (end - start).days + 1
        days = scale_days(period.benefit_days, kept, period.calendar_days)
        if period.tier.pool_tier is not None and days <= 0:
            self._drop(period)
            return None

        lost = period.benefit_days - days
        if lost > 0:
            refund_period_days(self.context, period, lost)
            self._refunded += lost

        if start == period.start and end == period.end and not period.needs_sequencing:
            return period
        return resize_period(self.context, period, start, end, days, needs_sequencing=False)

    def _place_fixed(
        self,
        period: LeavePeriod,
        cursor: date,
        placed: Sequence[LeavePeriod],
    ) -> Optional[LeavePeriod]:
        start = max(period.start, cursor)
        if period.is_filler:
            if start > period.end:
                return None
            preferred = [period.caregiver] + [p.caregiver for p in placed[-1:]]
            return self._filler(start, min(period.end, self.context.last_day), preferred)
        return self._fit(period, start, period.end)

    def _place_floating(self, period: LeavePeriod, cursor: date, limit: date) -> Optional[LeavePeriod]:
        end = min(cursor + timedelta(days=period.calendar_days - 1), limit)
        return self._fit(period, cursor, end)

    # ======================
    # Fillers
    # ======================

    def _filler(self, start: date, end: date, preferred: Sequence[Caregiver]) -> Optional[LeavePeriod]:
        """Filler for the first eligible caregiver, trimmed at their cutoff"""
        order: List[Caregiver] = []
        for caregiver in list(preferred) + list(INDIVIDUALS):
            if caregiver in INDIVIDUALS and caregiver not in order:
                order.append(caregiver)

        for caregiver in order:
            if self.context.is_eligible(caregiver, start):
                end = min(end, self.context.last_allowed_day(caregiver))
                self._fillers += 1
                return make_filler(self.context, caregiver, start, end)
        return None

    def share_targets(self) -> dict:
        """Calendar days each caregiver should cover, proportional to preferred months"""
        context = self.context
        months = {c: max(0.0, context.preferred_months[c]) for c in INDIVIDUALS}
        total = sum(months.values())
        return {
            c: context.plan_days * (months[c] / total if total > 0 else 0.5)
            for c in INDIVIDUALS
        }

    def _trailing_fillers(
        self,
        placed: List[LeavePeriod],
        cursor: date,
    ) -> Tuple[date, Optional[date]]:
        """Fill from *cursor* to the plan end; returns (cursor, stop date or None)"""
        context = self.context
        passes = context.rules.sequencing.max_filler_passes
        targets = self.share_targets()

        for pass_no in range(passes):
            if cursor > context.last_day:
                return cursor, None
            eligible = [c for c in INDIVIDUALS if context.is_eligible(c, cursor)]
            if not eligible:
                return cursor, cursor

            actual = {
                c: sum(p.calendar_days for p in placed if p.caregiver is c)
                for c in INDIVIDUALS
            }
            shortfall = {c: targets[c] - actual[c] for c in INDIVIDUALS}
            final = pass_no == passes - 1
            if final:
                caregiver = max(eligible, key=lambda c: (context.last_allowed_day(c), shortfall[c]))
            else:
                caregiver = max(eligible, key=lambda c: (shortfall[c], c is Caregiver.CAREGIVER_1))

            remaining = (context.last_day - cursor).days + 1
            length = remaining
            if not final and shortfall[caregiver] > 0:
                length = min(remaining, math.ceil(shortfall[caregiver]))

            end = min(cursor + timedelta(days=length - 1), context.last_allowed_day(caregiver))
            placed.append(make_filler(context, caregiver, cursor, end))
            self._fillers += 1
            cursor = end + ONE_DAY

        if cursor <= context.last_day:
            return cursor, cursor
        return cursor, None
