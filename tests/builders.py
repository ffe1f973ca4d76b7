"""Request builders shared by the test suite"""

from datetime import date
from decimal import Decimal

from leave_planner.domain.models import CaregiverProfile, PlanRequest


def build_request(
    income_1=30000,
    income_2=55000,
    total_months=15,
    months_1=10,
    months_2=5,
    income_floor=45000,
    weekly_days=5,
    simultaneous_months=0,
    start_date=date(2025, 1, 1),
    top_up_1=False,
    top_up_2=False,
    tax_rate=30,
    cutoff_1=None,
    cutoff_2=None,
) -> PlanRequest:
    """Household request; defaults are the 30k/55k, 10/5 month reference family"""
    return PlanRequest(
        caregiver_1=CaregiverProfile(Decimal(str(income_1)), top_up_1, Decimal(str(tax_rate))),
        caregiver_2=CaregiverProfile(Decimal(str(income_2)), top_up_2, Decimal(str(tax_rate))),
        total_months=total_months,
        caregiver_1_months=months_1,
        caregiver_2_months=months_2,
        income_floor=Decimal(str(income_floor)),
        weekly_days=weekly_days,
        simultaneous_months=simultaneous_months,
        start_date=start_date,
        caregiver_1_cutoff=cutoff_1,
        caregiver_2_cutoff=cutoff_2,
    )
