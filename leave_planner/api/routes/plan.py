"""
Plan API Routes
Run the leave planner and expose daily rates
"""

from datetime import date
from typing import Dict, List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from leave_planner.domain.models import (
    CaregiverProfile,
    LeavePeriod,
    MonthlyBreakdown,
    OptimizationResult,
    PlanRequest,
)
from leave_planner.domain.services.rate_calculator import (
    calculate_available_income,
    calculate_daily_rates,
    calculate_max_leave_months,
)
from leave_planner.utils.numbers import to_decimal

router = APIRouter()


# Request models
class CaregiverInput(BaseModel):
    gross_monthly_income: float = 35000
    has_employer_top_up: bool = False
    tax_rate: float = 30


class RatesRequest(CaregiverInput):
    weekly_days: float = 5


class PlanOptimizeRequest(BaseModel):
    caregiver_1: CaregiverInput = Field(default_factory=CaregiverInput)
    caregiver_2: CaregiverInput = Field(default_factory=CaregiverInput)
    total_months: float
    caregiver_1_months: float
    caregiver_2_months: float
    income_floor: float = 0
    weekly_days: float = 5
    simultaneous_months: float = 0
    start_date: date | None = None
    caregiver_1_cutoff: date | None = None
    caregiver_2_cutoff: date | None = None


# Response models
class PeriodInfo(BaseModel):
    caregiver: str
    start: date
    end: date
    tier: str
    benefit_days: int
    calendar_days: int
    weekly_days: int
    daily_benefit: float
    daily_income: float
    provenance: str
    transferred_from: str | None = None


class MonthInfo(BaseModel):
    month: date
    covered_days: int
    is_full_month: bool
    benefit_income: float
    employer_top_up_income: float
    wage_income: float
    total_income: float
    days_by_tier: Dict[str, int]


class LowestMonthInfo(BaseModel):
    month: date
    income: float
    label: str


class ResultInfo(BaseModel):
    strategy: str
    title: str
    description: str
    periods: List[PeriodInfo]
    total_income: float
    days_used_by_tier: Dict[str, int]
    days_remaining_by_tier: Dict[str, int]
    days_used: int
    days_saved: int
    average_monthly_income: float
    warnings: List[str]
    monthly_breakdown: List[MonthInfo]
    lowest_full_month: LowestMonthInfo | None = None
    converged: bool
    target_income: float
    prioritized_employer_top_up: bool


class RatesInfo(BaseModel):
    net_monthly_income: float
    net_daily_income: float
    standard_rate: float
    minimum_rate: float
    employer_top_up_rate: float
    available_income: float
    max_leave_months: float


def _to_profile(data: CaregiverInput) -> CaregiverProfile:
    return CaregiverProfile(
        gross_monthly_income=to_decimal(data.gross_monthly_income),
        has_employer_top_up=data.has_employer_top_up,
        tax_rate=to_decimal(data.tax_rate),
    )


def _period_info(period: LeavePeriod) -> PeriodInfo:
    return PeriodInfo(
        caregiver=period.caregiver.value,
        start=period.start,
        end=period.end,
        tier=period.tier.value,
        benefit_days=period.benefit_days,
        calendar_days=period.calendar_days,
        weekly_days=period.weekly_days,
        daily_benefit=float(period.daily_benefit),
        daily_income=float(period.daily_income),
        provenance=period.provenance.kind,
        transferred_from=period.transferred_from.value if period.transferred_from else None,
    )


def _month_info(breakdown: MonthlyBreakdown) -> MonthInfo:
    return MonthInfo(
        month=breakdown.month,
        covered_days=breakdown.covered_days,
        is_full_month=breakdown.is_full_month,
        benefit_income=float(breakdown.benefit_income),
        employer_top_up_income=float(breakdown.employer_top_up_income),
        wage_income=float(breakdown.wage_income),
        total_income=float(breakdown.total_income),
        days_by_tier={tier.value: days for tier, days in breakdown.days_by_tier.items()},
    )


def _result_info(result: OptimizationResult) -> ResultInfo:
    lowest = None
    if result.lowest_full_month is not None:
        lowest = LowestMonthInfo(
            month=result.lowest_full_month.month,
            income=float(result.lowest_full_month.income),
            label=result.lowest_full_month.label,
        )
    return ResultInfo(
        strategy=result.strategy.value,
        title=result.title,
        description=result.description,
        periods=[_period_info(p) for p in result.periods],
        total_income=float(result.total_income),
        days_used_by_tier={tier.value: days for tier, days in result.days_used_by_tier.items()},
        days_remaining_by_tier={tier.value: days for tier, days in result.days_remaining_by_tier.items()},
        days_used=result.days_used,
        days_saved=result.days_saved,
        average_monthly_income=float(result.average_monthly_income),
        warnings=list(result.warnings),
        monthly_breakdown=[_month_info(b) for b in result.monthly_breakdown],
        lowest_full_month=lowest,
        converged=result.converged,
        target_income=float(result.target_income),
        prioritized_employer_top_up=result.prioritized_employer_top_up,
    )


@router.post("/optimize", response_model=List[ResultInfo])
def optimize_plan(payload: PlanOptimizeRequest):
    """
    Compute the minimize-days and maximize-income plans
    """
    from leave_planner.main import strategy_selector

    if strategy_selector is None:
        raise HTTPException(status_code=500, detail="Configuration not loaded")

    request = PlanRequest(
        caregiver_1=_to_profile(payload.caregiver_1),
        caregiver_2=_to_profile(payload.caregiver_2),
        total_months=payload.total_months,
        caregiver_1_months=payload.caregiver_1_months,
        caregiver_2_months=payload.caregiver_2_months,
        income_floor=to_decimal(payload.income_floor),
        weekly_days=payload.weekly_days,
        simultaneous_months=payload.simultaneous_months,
        start_date=payload.start_date or date.today(),
        caregiver_1_cutoff=payload.caregiver_1_cutoff,
        caregiver_2_cutoff=payload.caregiver_2_cutoff,
    )
    return [_result_info(result) for result in strategy_selector.optimize(request)]


@router.post("/rates", response_model=RatesInfo)
def get_rates(payload: RatesRequest):
    """
    Daily rates of one caregiver and the longest leave the household
    quota covers at the requested days per week
    """
    from leave_planner.main import config_engine

    if config_engine is None:
        raise HTTPException(status_code=500, detail="Configuration not loaded")

    profile = _to_profile(payload)
    rules = config_engine.rules
    rates = calculate_daily_rates(profile, rules)
    return RatesInfo(
        net_monthly_income=float(rates.net_monthly_income),
        net_daily_income=float(rates.net_daily_income),
        standard_rate=float(rates.standard_rate),
        minimum_rate=float(rates.minimum_rate),
        employer_top_up_rate=float(rates.employer_top_up_rate),
        available_income=float(calculate_available_income(profile, rules)),
        max_leave_months=float(calculate_max_leave_months(payload.weekly_days, rules)),
    )
