"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    BenefitTier,
    Caregiver,
    StrategyKind,
    INDIVIDUALS,
    POOL_TIERS,

    # Provenance
    Filler,
    Original,
    Provenance,
    SharedInitial,
    TopUp,

    # Entities
    CaregiverProfile,
    DailyRates,
    DayPool,
    IncomeSummary,
    LeavePeriod,
    MonthlyBreakdown,
    OptimizationResult,
)
from .rules import (
    BenefitRules,
    DayQuotas,
    EmployerTopUpRules,
    SequencingRules,
    StatutoryBenefit,
)
from .context import (
    AllocationContext,
    PlanRequest,
    StrategyCandidate,
)

__all__ = [
    # Enums
    "BenefitTier",
    "Caregiver",
    "StrategyKind",
    "INDIVIDUALS",
    "POOL_TIERS",

    # Provenance
    "Filler",
    "Original",
    "Provenance",
    "SharedInitial",
    "TopUp",

    # Entities
    "CaregiverProfile",
    "DailyRates",
    "DayPool",
    "IncomeSummary",
    "LeavePeriod",
    "MonthlyBreakdown",
    "OptimizationResult",

    # Rules
    "BenefitRules",
    "DayQuotas",
    "EmployerTopUpRules",
    "SequencingRules",
    "StatutoryBenefit",

    # Context
    "AllocationContext",
    "PlanRequest",
    "StrategyCandidate",
]
