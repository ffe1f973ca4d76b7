from pathlib import Path
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from leave_planner.api.routes import health, plan
from leave_planner.domain.models import StrategyCandidate, StrategyKind
from leave_planner.domain.services.config_engine import ConfigEngine
from leave_planner.domain.services.strategy_selector import (
    StrategySelector,
    build_context,
    sanitize_request,
)
import leave_planner.main as app_main
from tests.builders import build_request

RULES_FILE = Path(__file__).resolve().parents[1] / "leave_planner" / "config" / "benefit_rules.yml"
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="session")
def rules():
    return ConfigEngine(RULES_FILE).load_all()


@pytest.fixture()
def selector(rules) -> StrategySelector:
    return StrategySelector(rules, max_iterations=8, max_passes_per_month=6)


@pytest.fixture()
def make_context(rules):
    """Factory: fresh AllocationContext for a minimize-days candidate"""
    def _make(prioritize=False, **overrides):
        request = sanitize_request(build_request(**overrides))
        candidate = StrategyCandidate(
            strategy=StrategyKind.MINIMIZE_DAYS,
            target_income=request.income_floor,
            prioritize_employer_top_up=prioritize,
            weekly_days=request.weekly_days,
        )
        return build_context(request, candidate, rules)
    return _make


@pytest.fixture()
async def app(rules) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(plan.router, prefix="/api/v1/plan", tags=["Plan"])

    config_engine = ConfigEngine(RULES_FILE)
    config_engine.load_all()
    app_main.config_engine = config_engine
    app_main.strategy_selector = StrategySelector(config_engine.rules)

    yield app

    app_main.config_engine = None
    app_main.strategy_selector = None


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
