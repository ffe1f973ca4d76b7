from fastapi import APIRouter

from leave_planner import __version__

router = APIRouter()


@router.get("/health")
def health():
    from leave_planner.main import config_engine

    rules_loaded = config_engine is not None and config_engine.is_loaded
    return {
        "status": "ok" if rules_loaded else "degraded",
        "version": __version__,
        "rules_loaded": rules_loaded,
    }
