"""
CONFIG ENGINE (ENGINE-0)
Load, validate, and expose benefit rules

RESPONSIBILITIES:
- Load the benefit rules YAML file
- Validate configuration integrity
- Expose a read-only BenefitRules object

RULES:
❌ No defaults if config missing
❌ No hardcoded statutory values
✅ Fail fast on invalid config
✅ Deterministic output
"""

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict

import yaml

from leave_planner.domain.exceptions import ConfigError
from leave_planner.domain.models import (
    BenefitRules,
    DayQuotas,
    EmployerTopUpRules,
    SequencingRules,
    StatutoryBenefit,
)

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("day_quotas", "statutory_benefit", "employer_top_up", "sequencing")


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for benefit rules
    """

    def __init__(self, rules_file: Path):
        """Initialize with the path to benefit_rules.yml"""
        self.rules_file = Path(rules_file)
        self._rules: BenefitRules | None = None

    def load_all(self) -> BenefitRules:
        """Load and validate the rules file"""
        if not self.rules_file.exists():
            raise ConfigError(f"Benefit rules not found: {self.rules_file}")

        with open(self.rules_file, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {self.rules_file}: {e}") from e

        self._rules = self.parse(data)
        logger.info(f"Benefit rules loaded from {self.rules_file}")
        return self._rules

    @classmethod
    def parse(cls, data: Any) -> BenefitRules:
        """Build BenefitRules from an already-parsed mapping"""
        if not isinstance(data, dict):
            raise ConfigError("Benefit rules must be a mapping")

        missing = [section for section in REQUIRED_SECTIONS if section not in data]
        if missing:
            raise ConfigError(f"Missing config sections: {missing}")

        try:
            quotas = data['day_quotas']
            statutory = data['statutory_benefit']
            top_up = data['employer_top_up']
            sequencing = data['sequencing']

            rules = BenefitRules(
                day_quotas=DayQuotas(
                    standard_days=cls._int(quotas, 'standard_days'),
                    minimum_days=cls._int(quotas, 'minimum_days'),
                    reserved_standard_days=cls._int(quotas, 'reserved_standard_days'),
                ),
                statutory=StatutoryBenefit(
                    income_base_rate=cls._decimal(statutory, 'income_base_rate'),
                    benefit_income_ceiling=cls._decimal(statutory, 'benefit_income_ceiling'),
                    replacement_rate=cls._decimal(statutory, 'replacement_rate'),
                    days_per_year=cls._int(statutory, 'days_per_year'),
                    max_daily_benefit=cls._decimal(statutory, 'max_daily_benefit'),
                    low_income_threshold=cls._decimal(statutory, 'low_income_threshold'),
                    low_income_daily_rate=cls._decimal(statutory, 'low_income_daily_rate'),
                    minimum_tier_daily_rate=cls._decimal(statutory, 'minimum_tier_daily_rate'),
                ),
                employer_top_up=EmployerTopUpRules(
                    base_amount=cls._decimal(top_up, 'base_amount'),
                    threshold_base_multiple=cls._decimal(top_up, 'threshold_base_multiple'),
                    below_threshold_rate=cls._decimal(top_up, 'below_threshold_rate'),
                    above_threshold_rate=cls._decimal(top_up, 'above_threshold_rate'),
                    max_months=cls._int(top_up, 'max_months'),
                ),
                sequencing=SequencingRules(
                    min_standard_days_before_minimum=cls._int(
                        sequencing, 'min_standard_days_before_minimum'
                    ),
                    min_standard_days_before_minimum_with_top_up=cls._int(
                        sequencing, 'min_standard_days_before_minimum_with_top_up'
                    ),
                    shared_initial_days=cls._int(sequencing, 'shared_initial_days'),
                    shared_initial_weekly_days=cls._int(sequencing, 'shared_initial_weekly_days'),
                    weeks_per_month=cls._decimal(sequencing, 'weeks_per_month'),
                    merge_tolerance=cls._decimal(sequencing, 'merge_tolerance'),
                    max_filler_passes=cls._int(sequencing, 'max_filler_passes'),
                    max_escalation_passes=cls._int(sequencing, 'max_escalation_passes'),
                ),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid benefit rules: {e}") from e

        cls._validate(rules)
        return rules

    @staticmethod
    def _validate(rules: BenefitRules) -> None:
        """Cross-field checks"""
        quotas = rules.day_quotas
        if quotas.reserved_standard_days * 2 > quotas.standard_days:
            logger.warning(
                f"Reserved standard days ({quotas.reserved_standard_days}) exceed half the quota; "
                f"reservation will be clamped to {quotas.standard_days // 2}"
            )
        if rules.statutory.max_daily_benefit <= Decimal('0'):
            raise ConfigError("max_daily_benefit must be positive")
        if rules.sequencing.weeks_per_month <= Decimal('0'):
            raise ConfigError("weeks_per_month must be positive")

    @staticmethod
    def _section_value(section: Dict, key: str) -> Any:
        if not isinstance(section, dict) or key not in section:
            raise ConfigError(f"Missing config key: {key}")
        return section[key]

    @classmethod
    def _decimal(cls, section: Dict, key: str) -> Decimal:
        value = cls._section_value(section, key)
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ConfigError(f"{key} must be numeric, got {value!r}") from e
        if not result.is_finite() or result < Decimal('0'):
            raise ConfigError(f"{key} must be a non-negative number, got {value!r}")
        return result

    @classmethod
    def _int(cls, section: Dict, key: str) -> int:
        value = cls._section_value(section, key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        if value < 0:
            raise ConfigError(f"{key} cannot be negative, got {value}")
        return value

    # ======================
    # Read-only accessors
    # ======================

    @property
    def is_loaded(self) -> bool:
        return self._rules is not None

    @property
    def rules(self) -> BenefitRules:
        if self._rules is None:
            raise ConfigError("Benefit rules not loaded")
        return self._rules
