"""
Per-candidate planning state.

``PlanRequest`` and ``StrategyCandidate`` are immutable inputs.
``AllocationContext`` is built fresh for every candidate run; its day pools,
month owner map, chronological counters and warnings are the only state
mutated during that run.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from leave_planner.domain.models.entities import (
    BenefitTier,
    Caregiver,
    CaregiverProfile,
    DailyRates,
    DayPool,
    INDIVIDUALS,
    StrategyKind,
)
from leave_planner.domain.models.rules import BenefitRules
from leave_planner.utils.dates import add_months


@dataclass(frozen=True)
class PlanRequest:
    """Household planning input"""
    caregiver_1: CaregiverProfile
    caregiver_2: CaregiverProfile
    total_months: float
    caregiver_1_months: float
    caregiver_2_months: float
    income_floor: Decimal
    weekly_days: float = 5
    simultaneous_months: float = 0.0
    start_date: Optional[date] = None
    caregiver_1_cutoff: Optional[date] = None
    caregiver_2_cutoff: Optional[date] = None

    def profile(self, caregiver: Caregiver) -> CaregiverProfile:
        return self.caregiver_1 if caregiver is Caregiver.CAREGIVER_1 else self.caregiver_2

    def preferred_months(self, caregiver: Caregiver) -> float:
        if caregiver is Caregiver.CAREGIVER_1:
            return self.caregiver_1_months
        return self.caregiver_2_months

    def cutoff(self, caregiver: Caregiver) -> Optional[date]:
        if caregiver is Caregiver.CAREGIVER_1:
            return self.caregiver_1_cutoff
        return self.caregiver_2_cutoff


@dataclass(frozen=True)
class StrategyCandidate:
    """One pipeline configuration evaluated by the strategy selector"""
    strategy: StrategyKind
    target_income: Decimal
    prioritize_employer_top_up: bool
    weekly_days: int


@dataclass
class AllocationContext:
    """Configuration bag threaded through every pipeline stage"""
    rules: BenefitRules
    strategy: StrategyKind
    profiles: Dict[Caregiver, CaregiverProfile]
    rates: Dict[Caregiver, DailyRates]
    pools: Dict[Caregiver, DayPool]
    income_floor: Decimal
    plan_start: date
    plan_end: date  # exclusive
    weekly_days: int
    preferred_months: Dict[Caregiver, float]
    calendar_caps: Dict[Caregiver, int]
    earliest_start: Dict[Caregiver, date]
    window_end: Dict[Caregiver, date]  # exclusive
    cutoffs: Dict[Caregiver, Optional[date]] = field(default_factory=dict)
    simultaneous_start: Optional[date] = None
    simultaneous_end: Optional[date] = None  # exclusive
    prioritize_employer_top_up: bool = False
    month_owner: Dict[date, Caregiver] = field(default_factory=dict)
    chronological_standard_days: Dict[Caregiver, int] = field(
        default_factory=lambda: {c: 0 for c in INDIVIDUALS}
    )
    warnings: List[str] = field(default_factory=list)

    @property
    def last_day(self) -> date:
        return self.plan_end - timedelta(days=1)

    @property
    def plan_days(self) -> int:
        return max(0, (self.plan_end - self.plan_start).days)

    def last_allowed_day(self, caregiver: Caregiver) -> date:
        """Last day *caregiver* may be assigned (BOTH honours both cutoffs)"""
        limit = self.last_day
        members = INDIVIDUALS if caregiver is Caregiver.BOTH else (caregiver,)
        for member in members:
            cutoff = self.cutoffs.get(member)
            if cutoff is not None:
                limit = min(limit, cutoff - timedelta(days=1))
        return limit

    def is_eligible(self, caregiver: Caregiver, day: date) -> bool:
        return day <= self.last_allowed_day(caregiver)

    def chronological_threshold(self, caregiver: Caregiver) -> int:
        sequencing = self.rules.sequencing
        if self.profiles[caregiver].has_employer_top_up:
            return sequencing.min_standard_days_before_minimum_with_top_up
        return sequencing.min_standard_days_before_minimum

    def top_up_window(self, caregiver: Caregiver) -> Optional[Tuple[date, date]]:
        """Dates (end exclusive) during which the employer tops up *caregiver*'s leave"""
        if not self.profiles[caregiver].has_employer_top_up:
            return None
        months = self.rules.employer_top_up.max_months
        if months <= 0:
            return None
        start = self.earliest_start[caregiver]
        return start, add_months(start, months)

    def paid_tier(self, caregiver: Caregiver, pool_tier: BenefitTier, day: date) -> BenefitTier:
        """Resolve the tier a Standard-pool day is paid at on *day*"""
        if pool_tier is not BenefitTier.STANDARD or caregiver is Caregiver.BOTH:
            return pool_tier
        window = self.top_up_window(caregiver)
        if window and window[0] <= day < window[1]:
            return BenefitTier.EMPLOYER_TOP_UP
        return BenefitTier.STANDARD

    def record_standard_days(self, caregiver: Caregiver, days: int) -> None:
        members = INDIVIDUALS if caregiver is Caregiver.BOTH else (caregiver,)
        for member in members:
            self.chronological_standard_days[member] += days

    def reset_chronology(self) -> None:
        self.chronological_standard_days = {c: 0 for c in INDIVIDUALS}

    def remaining_months(self, caregiver: Caregiver, day: date) -> float:
        """Preferred months left in *caregiver*'s window from *day*"""
        start = max(day, self.earliest_start[caregiver])
        end = self.window_end[caregiver]
        if end <= start:
            return 0.0
        return (end - start).days / 30

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)
