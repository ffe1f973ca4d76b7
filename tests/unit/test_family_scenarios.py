"""
Scenario replay: every household in fixtures/families.yml through the optimizer
"""

from datetime import date, timedelta
from pathlib import Path

import pytest
import yaml

from leave_planner.domain.models import BenefitTier, Caregiver
from tests.builders import build_request

FAMILIES_FILE = Path(__file__).resolve().parents[1] / "fixtures" / "families.yml"

with open(FAMILIES_FILE) as f:
    FAMILIES = yaml.safe_load(f)


def _last_allowed(request, caregiver, last_day):
    cutoff = request.cutoff(caregiver)
    if cutoff is None:
        return last_day
    return min(last_day, cutoff - timedelta(days=1))


@pytest.mark.unit
@pytest.mark.parametrize("name", sorted(FAMILIES))
def test_family_invariants(selector, rules, name):
    family = FAMILIES[name]
    request = build_request(**family["request"])

    results = selector.optimize(request)

    assert len(results) == 2
    quotas = rules.day_quotas
    for result in results:
        assert not result.is_empty, result.warnings
        assert result.days_used + result.days_saved == quotas.total_days

        periods = result.periods
        assert periods[0].start == request.start_date
        for previous, current in zip(periods, periods[1:]):
            assert (current.start - previous.end).days == 1

        last_day = periods[-1].end
        for period in periods:
            assert 0 <= period.weekly_days <= 7
            assert not period.needs_sequencing
            if period.caregiver in (Caregiver.CAREGIVER_1, Caregiver.CAREGIVER_2):
                assert period.end <= _last_allowed(request, period.caregiver, last_day)
            if period.is_filler:
                assert period.benefit_days == 0


@pytest.mark.unit
@pytest.mark.parametrize("name", sorted(FAMILIES))
def test_family_expectations(selector, name):
    family = FAMILIES[name]
    expect = family.get("expect", {})

    minimize = selector.optimize(build_request(**family["request"]))[0]

    if "converged" in expect:
        assert minimize.converged is expect["converged"]
    if "warning" in expect:
        assert any(expect["warning"] in w for w in minimize.warnings), minimize.warnings
    if expect.get("fillers"):
        assert any(p.is_filler for p in minimize.periods)
    if "tier" in expect:
        tier = BenefitTier(expect["tier"])
        assert any(p.tier is tier for p in minimize.periods)
    if "shared_periods" in expect:
        shared = [p for p in minimize.periods if p.caregiver is Caregiver.BOTH]
        assert len(shared) == expect["shared_periods"]
