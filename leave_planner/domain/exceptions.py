"""
Planner exception hierarchy.

These never reach callers of the strategy selector: they guard internal
invariants and are converted into result warnings at the candidate boundary.
"""


class PlannerError(Exception):
    """Base class for engine errors."""


class ConfigError(PlannerError):
    """Benefit rules file is missing or invalid."""


class PoolExhaustedError(PlannerError):
    """A day pool was asked for more days than it can supply."""

    def __init__(self, tier: str, requested: int, available: int):
        self.tier = tier
        self.requested = requested
        self.available = available
        super().__init__(
            f"Day pool exhausted for {tier}: requested {requested}, available {available}"
        )
