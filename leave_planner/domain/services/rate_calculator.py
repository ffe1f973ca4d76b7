"""
RATE CALCULATOR
Convert gross monthly income → net income and daily benefit rates

RESPONSIBILITIES:
- Statutory Standard-tier daily rate (ceiling-capped base, capped and floored)
- Minimum-tier flat daily rate
- Employer top-up daily rate (two-bracket formula)
- Net monthly / daily income
- Leave length the household quota covers at a weekly day count

RULES:
❌ No side effects
❌ No rounding before the final figure
✅ Degenerate input → zero rates
✅ Quantize to 0.01 once, at the end
"""

from decimal import Decimal, ROUND_CEILING
from fractions import Fraction
from typing import Optional

from leave_planner.domain.models import BenefitRules, CaregiverProfile, DailyRates
from leave_planner.utils.numbers import ZERO, quantize_money, round_half_up, safe_float, to_decimal

MONTH_DAYS = Decimal('30')
HUNDRED = Decimal('100')
HALF_MONTH = Decimal('0.5')


def _net_factor(profile: CaregiverProfile) -> Decimal:
    tax = min(HUNDRED, max(ZERO, to_decimal(profile.tax_rate)))
    return Decimal('1') - tax / HUNDRED


def _gross_standard_rate(income: Decimal, rules: BenefitRules) -> Decimal:
    statutory = rules.statutory
    if income < statutory.low_income_threshold:
        return statutory.low_income_daily_rate

    base = min(income * statutory.income_base_rate, statutory.benefit_income_ceiling)
    annual = base * Decimal('12') * statutory.replacement_rate
    daily = annual / Decimal(statutory.days_per_year)
    return min(statutory.max_daily_benefit, max(statutory.low_income_daily_rate, daily))


def _gross_employer_top_up(income: Decimal, rules: BenefitRules) -> Decimal:
    """Monthly gross top-up from the two-bracket agreement formula"""
    top_up = rules.employer_top_up
    threshold = top_up.monthly_threshold
    if income <= threshold:
        return income * top_up.below_threshold_rate
    return threshold * top_up.below_threshold_rate + (income - threshold) * top_up.above_threshold_rate


def calculate_daily_rates(profile: CaregiverProfile, rules: BenefitRules) -> DailyRates:
    """
    Derive the daily rates of one caregiver

    Args:
        profile: Caregiver income input
        rules: Benefit rules

    Returns:
        DailyRates with every figure net of tax
    """
    income = to_decimal(profile.gross_monthly_income)
    if income <= ZERO:
        return DailyRates(
            net_monthly_income=Decimal('0.00'),
            net_daily_income=Decimal('0.00'),
            standard_rate=Decimal('0.00'),
            minimum_rate=Decimal('0.00'),
            employer_top_up_rate=Decimal('0.00'),
        )

    net = _net_factor(profile)
    net_monthly = income * net

    employer_top_up = ZERO
    if profile.has_employer_top_up:
        employer_top_up = _gross_employer_top_up(income, rules) * net / MONTH_DAYS

    return DailyRates(
        net_monthly_income=quantize_money(net_monthly),
        net_daily_income=quantize_money(net_monthly / MONTH_DAYS),
        standard_rate=quantize_money(_gross_standard_rate(income, rules) * net),
        minimum_rate=quantize_money(rules.statutory.minimum_tier_daily_rate * net),
        employer_top_up_rate=quantize_money(employer_top_up),
    )


def calculate_available_income(profile: CaregiverProfile, rules: BenefitRules) -> Decimal:
    """Monthly income while on leave at the best paid tier (30 paid days)"""
    rates = calculate_daily_rates(profile, rules)
    return quantize_money((rates.standard_rate + rates.employer_top_up_rate) * MONTH_DAYS)


def calculate_max_leave_months(
    weekly_days,
    rules: BenefitRules,
    total_days: Optional[int] = None,
) -> Decimal:
    """
    Longest leave the benefit days cover at *weekly_days* days per week

    Args:
        weekly_days: Benefit days taken per week (rounded half up, at least 1)
        rules: Benefit rules (weeks per month, household quota)
        total_days: Days to spread; defaults to the household quota

    Returns:
        Months rounded up to the next half month, at least one month
    """
    days_per_week = max(1, round_half_up(Fraction(safe_float(weekly_days))))
    days = rules.day_quotas.total_days if total_days is None else total_days
    months = Decimal(days) / Decimal(days_per_week) / rules.sequencing.weeks_per_month
    if months <= ZERO:
        return Decimal('1.0')
    halves = (months / HALF_MONTH).to_integral_value(rounding=ROUND_CEILING)
    return halves * HALF_MONTH
