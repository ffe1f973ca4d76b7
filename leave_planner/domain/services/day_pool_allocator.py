"""
DAY-POOL ALLOCATOR
Split the household day quotas between the two caregivers

RULES:
✅ Each caregiver keeps a reserved Standard share (never transferable)
✅ Transferable remainder split by preferred months (half-up for caregiver 1)
✅ Minimum days split by preferred months, no reservation
✅ Even split when neither caregiver states a preference
✅ Per tier, the two pools always sum to the quota
"""

import logging
from fractions import Fraction
from typing import Dict

from leave_planner.domain.models import BenefitRules, Caregiver, DayPool
from leave_planner.utils.numbers import round_half_up, safe_float

logger = logging.getLogger(__name__)


def _share(total: int, own: float, other: float) -> int:
    """Caregiver 1's share of *total*, proportional to months"""
    if total <= 0:
        return 0
    if own + other <= 0:
        return round_half_up(Fraction(total, 2))
    return min(total, round_half_up(Fraction(total) * Fraction(own) / Fraction(own + other)))


def allocate_day_pools(
    caregiver_1_months: float,
    caregiver_2_months: float,
    rules: BenefitRules,
) -> Dict[Caregiver, DayPool]:
    """
    Allocate per-caregiver day pools

    Args:
        caregiver_1_months: Preferred leave months of caregiver 1
        caregiver_2_months: Preferred leave months of caregiver 2
        rules: Benefit rules (quotas)

    Returns:
        Mapping caregiver -> fresh DayPool
    """
    quotas = rules.day_quotas
    months_1 = max(0.0, safe_float(caregiver_1_months))
    months_2 = max(0.0, safe_float(caregiver_2_months))

    reserved = min(quotas.reserved_standard_days, quotas.standard_days // 2)
    transferable = quotas.standard_days - 2 * reserved

    standard_1 = reserved + _share(transferable, months_1, months_2)
    standard_2 = quotas.standard_days - standard_1
    minimum_1 = _share(quotas.minimum_days, months_1, months_2)
    minimum_2 = quotas.minimum_days - minimum_1

    logger.debug(
        f"Day pools: caregiver_1 {standard_1}/{minimum_1}, caregiver_2 {standard_2}/{minimum_2} "
        f"(reserved {reserved} each)"
    )

    return {
        Caregiver.CAREGIVER_1: DayPool(standard=standard_1, minimum=minimum_1, reserved_total=reserved),
        Caregiver.CAREGIVER_2: DayPool(standard=standard_2, minimum=minimum_2, reserved_total=reserved),
    }
