"""
Benefit rule objects loaded from benefit_rules.yml
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class DayQuotas:
    """Household day quotas per tier"""
    standard_days: int
    minimum_days: int
    reserved_standard_days: int

    def __post_init__(self):
        if self.standard_days < 0 or self.minimum_days < 0 or self.reserved_standard_days < 0:
            raise ValueError("Day quotas cannot be negative")

    @property
    def total_days(self) -> int:
        return self.standard_days + self.minimum_days


@dataclass(frozen=True)
class StatutoryBenefit:
    """Statutory daily benefit formula inputs"""
    income_base_rate: Decimal
    benefit_income_ceiling: Decimal
    replacement_rate: Decimal
    days_per_year: int
    max_daily_benefit: Decimal
    low_income_threshold: Decimal
    low_income_daily_rate: Decimal
    minimum_tier_daily_rate: Decimal

    def __post_init__(self):
        for name in ("income_base_rate", "replacement_rate"):
            value = getattr(self, name)
            if not Decimal('0') <= value <= Decimal('1'):
                raise ValueError(f"{name} must be within 0..1, got {value}")
        if self.days_per_year <= 0:
            raise ValueError("days_per_year must be positive")


@dataclass(frozen=True)
class EmployerTopUpRules:
    """Collective-agreement salary top-up brackets"""
    base_amount: Decimal
    threshold_base_multiple: Decimal
    below_threshold_rate: Decimal
    above_threshold_rate: Decimal
    max_months: int

    def __post_init__(self):
        for name in ("below_threshold_rate", "above_threshold_rate"):
            value = getattr(self, name)
            if not Decimal('0') <= value <= Decimal('1'):
                raise ValueError(f"{name} must be within 0..1, got {value}")
        if self.max_months < 0:
            raise ValueError("max_months cannot be negative")

    @property
    def monthly_threshold(self) -> Decimal:
        return self.threshold_base_multiple * self.base_amount / Decimal('12')


@dataclass(frozen=True)
class SequencingRules:
    """Ordering and layout constants"""
    min_standard_days_before_minimum: int
    min_standard_days_before_minimum_with_top_up: int
    shared_initial_days: int
    shared_initial_weekly_days: int
    weeks_per_month: Decimal
    merge_tolerance: Decimal
    max_filler_passes: int
    max_escalation_passes: int

    def __post_init__(self):
        if not 1 <= self.shared_initial_weekly_days <= 7:
            raise ValueError("shared_initial_weekly_days must be within 1..7")
        if self.max_filler_passes < 1 or self.max_escalation_passes < 0:
            raise ValueError("Pass limits must be positive")


@dataclass(frozen=True)
class BenefitRules:
    """Complete rule set for one jurisdiction - Immutable"""
    day_quotas: DayQuotas
    statutory: StatutoryBenefit
    employer_top_up: EmployerTopUpRules
    sequencing: SequencingRules
