"""
Tier choice shared by the period synthesizer and the top-up engine.

Standard days are preferred. While a caregiver's chronological Standard count
is below the threshold for their agreement status, Standard is forced (from
the other pool if need be) as long as either pool can supply it.
"""

from dataclasses import dataclass
from typing import Optional

from leave_planner.domain.models import AllocationContext, BenefitTier, Caregiver


@dataclass(frozen=True)
class TierChoice:
    """Pool tier to draw from and whose pool pays"""
    tier: BenefitTier
    funder: Caregiver
    caregiver: Caregiver

    @property
    def is_transfer(self) -> bool:
        return self.funder is not self.caregiver


def drawable_days(context: AllocationContext, choice: TierChoice) -> int:
    """Days *choice* may still draw from its funding pool"""
    pool = context.pools[choice.funder]
    if choice.is_transfer:
        return pool.transferable(choice.tier)
    return pool.available(choice.tier)


def standard_required(context: AllocationContext, caregiver: Caregiver) -> bool:
    return context.chronological_standard_days[caregiver] < context.chronological_threshold(caregiver)


def choose_tier(
    context: AllocationContext,
    caregiver: Caregiver,
    allow_transfer: bool = True,
) -> Optional[TierChoice]:
    """
    Pick the pool tier and funder for new leave days of *caregiver*

    Order:
        1. Standard forced while below the chronological threshold
           (own pool, then the other pool's transferable days)
        2. Own Standard
        3. Own Minimum
        4. Other caregiver's transferable Standard
        5. Other caregiver's Minimum

    Returns:
        TierChoice, or None when nothing can be drawn
    """
    own = context.pools[caregiver]
    other = caregiver.other
    other_pool = context.pools[other]
    standard = BenefitTier.STANDARD
    minimum = BenefitTier.MINIMUM

    if standard_required(context, caregiver):
        if own.available(standard) > 0:
            return TierChoice(standard, caregiver, caregiver)
        if allow_transfer and other_pool.transferable(standard) > 0:
            return TierChoice(standard, other, caregiver)

    if own.available(standard) > 0:
        return TierChoice(standard, caregiver, caregiver)
    if own.available(minimum) > 0:
        return TierChoice(minimum, caregiver, caregiver)
    if not allow_transfer:
        return None
    if other_pool.transferable(standard) > 0:
        return TierChoice(standard, other, caregiver)
    if other_pool.transferable(minimum) > 0:
        return TierChoice(minimum, other, caregiver)
    return None
