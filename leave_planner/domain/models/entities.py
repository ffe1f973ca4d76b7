"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Union

from leave_planner.domain.exceptions import PoolExhaustedError


class Caregiver(str, Enum):
    """Who is on leave during a period"""
    CAREGIVER_1 = "caregiver_1"
    CAREGIVER_2 = "caregiver_2"
    BOTH = "both"

    @property
    def other(self) -> "Caregiver":
        if self is Caregiver.CAREGIVER_1:
            return Caregiver.CAREGIVER_2
        if self is Caregiver.CAREGIVER_2:
            return Caregiver.CAREGIVER_1
        raise ValueError("BOTH has no counterpart")

    @property
    def label(self) -> str:
        return {
            Caregiver.CAREGIVER_1: "Caregiver 1",
            Caregiver.CAREGIVER_2: "Caregiver 2",
            Caregiver.BOTH: "Both caregivers",
        }[self]


INDIVIDUALS: Tuple[Caregiver, Caregiver] = (Caregiver.CAREGIVER_1, Caregiver.CAREGIVER_2)


class BenefitTier(str, Enum):
    """Daily rate level a leave day is paid at"""
    EMPLOYER_TOP_UP = "employer_top_up"
    STANDARD = "standard"
    MINIMUM = "minimum"
    NONE = "none"

    @property
    def pool_tier(self) -> Optional["BenefitTier"]:
        """Day pool this tier draws from (None for fillers)"""
        if self in (BenefitTier.EMPLOYER_TOP_UP, BenefitTier.STANDARD):
            return BenefitTier.STANDARD
        if self is BenefitTier.MINIMUM:
            return BenefitTier.MINIMUM
        return None


POOL_TIERS: Tuple[BenefitTier, BenefitTier] = (BenefitTier.STANDARD, BenefitTier.MINIMUM)


class StrategyKind(str, Enum):
    """Optimization strategy"""
    MINIMIZE_DAYS = "minimize_days"
    MAXIMIZE_INCOME = "maximize_income"


@dataclass(frozen=True)
class CaregiverProfile:
    """Caregiver income input - Immutable"""
    gross_monthly_income: Decimal
    has_employer_top_up: bool = False
    tax_rate: Decimal = Decimal('30')


@dataclass(frozen=True)
class DailyRates:
    """Net daily rates derived from a CaregiverProfile - Immutable"""
    net_monthly_income: Decimal
    net_daily_income: Decimal
    standard_rate: Decimal
    minimum_rate: Decimal
    employer_top_up_rate: Decimal

    def base_rate_for(self, tier: BenefitTier) -> Decimal:
        """Statutory benefit per benefit day, excluding employer top-up"""
        pool = tier.pool_tier
        if pool is BenefitTier.STANDARD:
            return self.standard_rate
        if pool is BenefitTier.MINIMUM:
            return self.minimum_rate
        return Decimal('0')

    def top_up_for(self, tier: BenefitTier) -> Decimal:
        if tier is BenefitTier.EMPLOYER_TOP_UP:
            return self.employer_top_up_rate
        return Decimal('0')

    def rate_for(self, tier: BenefitTier) -> Decimal:
        """Total net income per benefit day at *tier*"""
        return self.base_rate_for(tier) + self.top_up_for(tier)


@dataclass
class DayPool:
    """
    Remaining benefit days of one caregiver.

    ``reserved_total`` Standard days can only be spent by the owner. Days
    the owner spends count toward that reservation, so the non-transferable
    remainder shrinks as the owner takes leave.
    """
    standard: int
    minimum: int
    reserved_total: int = 0
    owner_standard_used: int = 0

    def __post_init__(self):
        if self.standard < 0 or self.minimum < 0:
            raise ValueError("Day pool cannot be negative")

    @property
    def reserved_standard(self) -> int:
        """Standard days still reserved for the owner"""
        return min(self.standard, max(0, self.reserved_total - self.owner_standard_used))

    @property
    def total(self) -> int:
        return self.standard + self.minimum

    def available(self, tier: BenefitTier) -> int:
        pool = tier.pool_tier
        if pool is BenefitTier.STANDARD:
            return self.standard
        if pool is BenefitTier.MINIMUM:
            return self.minimum
        return 0

    def transferable(self, tier: BenefitTier) -> int:
        """Days the other caregiver may draw from this pool"""
        pool = tier.pool_tier
        if pool is BenefitTier.STANDARD:
            return max(0, self.standard - self.reserved_standard)
        if pool is BenefitTier.MINIMUM:
            return self.minimum
        return 0

    def consume(self, tier: BenefitTier, days: int, by_owner: bool = True) -> None:
        if days <= 0:
            return
        limit = self.available(tier) if by_owner else self.transferable(tier)
        if days > limit:
            raise PoolExhaustedError(tier.value, days, limit)
        if tier.pool_tier is BenefitTier.STANDARD:
            self.standard -= days
            if by_owner:
                self.owner_standard_used += days
        else:
            self.minimum -= days

    def refund(self, tier: BenefitTier, days: int, by_owner: bool = True) -> None:
        if days <= 0:
            return
        pool = tier.pool_tier
        if pool is BenefitTier.STANDARD:
            self.standard += days
            if by_owner:
                self.owner_standard_used = max(0, self.owner_standard_used - days)
        elif pool is BenefitTier.MINIMUM:
            self.minimum += days


# ======================
# Provenance
# ======================

@dataclass(frozen=True)
class Original:
    """Period laid out from a caregiver's preferred window"""
    kind: ClassVar[str] = "original"


@dataclass(frozen=True)
class SharedInitial:
    """Fixed period both caregivers take together at plan start"""
    kind: ClassVar[str] = "shared_initial"


@dataclass(frozen=True)
class Filler:
    """Uncovered calendar time, both caregivers working"""
    kind: ClassVar[str] = "filler"


@dataclass(frozen=True)
class TopUp:
    """Extra days added to close an income shortfall"""
    transferred_from: Optional[Caregiver] = None
    kind: ClassVar[str] = "top_up"


Provenance = Union[Original, SharedInitial, Filler, TopUp]


@dataclass(frozen=True)
class LeavePeriod:
    """Dated stretch of leave (start and end inclusive) - Immutable"""
    caregiver: Caregiver
    start: date
    end: date
    tier: BenefitTier
    benefit_days: int
    daily_benefit: Decimal
    daily_income: Decimal
    weekly_days: int
    provenance: Provenance = field(default_factory=Original)
    needs_sequencing: bool = False
    anchor_month: Optional[date] = None

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("Period end before start")
        if self.benefit_days < 0:
            raise ValueError("Benefit days cannot be negative")
        if not 0 <= self.weekly_days <= 7:
            raise ValueError("Weekly days must be within 0..7")
        if self.caregiver is Caregiver.BOTH and isinstance(self.provenance, (Filler, TopUp)):
            raise ValueError("Shared periods cannot be fillers or top-ups")

    @property
    def calendar_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def is_filler(self) -> bool:
        return isinstance(self.provenance, Filler)

    @property
    def is_top_up(self) -> bool:
        return isinstance(self.provenance, TopUp)

    @property
    def is_shared_initial(self) -> bool:
        return isinstance(self.provenance, SharedInitial)

    @property
    def transferred_from(self) -> Optional[Caregiver]:
        return getattr(self.provenance, "transferred_from", None)

    @property
    def transferred_days(self) -> int:
        return self.benefit_days if self.transferred_from else 0

    @property
    def funder(self) -> Caregiver:
        """Caregiver whose pool pays for the period"""
        return self.transferred_from or self.caregiver

    @property
    def total_income(self) -> Decimal:
        return self.daily_income * self.calendar_days


@dataclass(frozen=True)
class MonthlyBreakdown:
    """Household income for one calendar month - Immutable"""
    month: date
    month_length: int
    covered_days: int
    benefit_income: Decimal
    employer_top_up_income: Decimal
    wage_income: Decimal
    total_income: Decimal
    days_by_tier: Dict[BenefitTier, int]
    leave_days_by_caregiver: Dict[Caregiver, int]
    benefit_days_by_caregiver: Dict[Caregiver, int]
    standard_days_by_caregiver: Dict[Caregiver, int]
    weekly_days_by_caregiver: Dict[Caregiver, int]

    @property
    def is_full_month(self) -> bool:
        return self.covered_days >= self.month_length

    @property
    def both_took_leave(self) -> bool:
        return all(self.leave_days_by_caregiver.get(c, 0) > 0 for c in INDIVIDUALS)


@dataclass(frozen=True)
class IncomeSummary:
    """Lowest fully covered month of a plan"""
    month: date
    income: Decimal
    label: str


@dataclass(frozen=True)
class OptimizationResult:
    """Plan produced for one strategy - Immutable"""
    strategy: StrategyKind
    title: str
    description: str
    periods: Tuple[LeavePeriod, ...]
    total_income: Decimal
    days_used_by_tier: Dict[BenefitTier, int]
    days_remaining_by_tier: Dict[BenefitTier, int]
    days_used: int
    days_saved: int
    average_monthly_income: Decimal
    warnings: Tuple[str, ...] = ()
    monthly_breakdown: Tuple[MonthlyBreakdown, ...] = ()
    lowest_full_month: Optional[IncomeSummary] = None
    converged: bool = True
    target_income: Decimal = Decimal('0')
    prioritized_employer_top_up: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.periods
