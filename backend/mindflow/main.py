import logging
import random
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from . import telemetry_pipeline  # noqa: F401
from .api_models import WellnessTipsPayload
from .config import Settings, get_settings
from .constants import WELLNESS_TIPS
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .developer_routes import router as developer_router
from .logging_config import configure_logging
from .plan_routes import router as plan_router
from .progress_routes import router as progress_router
from .todo_routes import router as todo_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="MindFlow Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(plan_router)
app.include_router(progress_router)
app.include_router(todo_router)

settings_snapshot = get_settings()
logger.info("Backend starting with plan generator: %s", settings_snapshot.plan_generator)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))
if settings_snapshot.debug_endpoints:
    app.include_router(developer_router)
    logger.info("Developer endpoints enabled.")


_tip_rng = random.Random()


def get_tip_rng() -> random.Random:
    return _tip_rng


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "plan_generator": settings.plan_generator}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "dialect": engine.dialect.name,
        "auto_create": settings.database_auto_create,
        "pool": get_pool_snapshot(engine),
    }


@app.get("/api/wellness-tips", response_model=WellnessTipsPayload)
def wellness_tips(rng: random.Random = Depends(get_tip_rng)) -> WellnessTipsPayload:
    return WellnessTipsPayload(tips=list(WELLNESS_TIPS), random_tip=rng.choice(WELLNESS_TIPS))
