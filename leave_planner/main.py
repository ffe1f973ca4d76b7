"""
FastAPI Main Application
Thin HTTP surface over the leave planning engine
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from leave_planner import __version__
from leave_planner.config import settings
from leave_planner.core.logging import setup_logging
from leave_planner.domain.services.config_engine import ConfigEngine
from leave_planner.domain.services.strategy_selector import StrategySelector

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Global instances
config_engine: ConfigEngine | None = None
strategy_selector: StrategySelector | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Loads benefit rules and builds the strategy selector
    """
    global config_engine, strategy_selector

    logger.info("Starting leave planner")
    config_engine = ConfigEngine(settings.benefit_rules_path)
    rules = config_engine.load_all()
    strategy_selector = StrategySelector(
        rules,
        max_iterations=settings.MAX_TOP_UP_ITERATIONS,
        max_passes_per_month=settings.MAX_PASSES_PER_MONTH,
    )
    logger.info(
        f"Benefit rules ready: {rules.day_quotas.standard_days} standard / "
        f"{rules.day_quotas.minimum_days} minimum days"
    )

    yield

    logger.info("Leave planner shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Parental Leave Planner",
    description="Allocates parental-leave benefit days between two caregivers",
    version=__version__,
    lifespan=lifespan,
)


# Import and include routers
from leave_planner.api.routes import health, plan  # noqa: E402

app.include_router(health.router, tags=["Health"])
app.include_router(plan.router, prefix="/api/v1/plan", tags=["Plan"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("leave_planner.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
