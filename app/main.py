"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.metrics import build_metrics_response, instrument_http_request
from app.modules.booking.router import router as booking_router
from app.modules.scheduling.router import router as scheduling_router
from app.modules.scheduling.service import edit_registry, queue_registry
from app.modules.teachers.router import router as teachers_router
from app.shared.exceptions import register_exception_handlers
from app.shared.timeutils import format_minutes_to_time, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    policy = queue_registry.policy
    logger.info(
        "Starting %s (operating window %s-%s, step %s min)",
        settings.app_name,
        format_minutes_to_time(policy.day_start),
        format_minutes_to_time(policy.day_end),
        policy.step,
    )

    yield

    logger.info("Shutting down %s", settings.app_name)
    await close_engine()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)

register_exception_handlers(app)

app.include_router(teachers_router, prefix=settings.api_prefix)
app.include_router(booking_router, prefix=settings.api_prefix)
app.include_router(scheduling_router, prefix=settings.api_prefix)


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    """Liveness check endpoint."""
    return {"status": "ok"}


async def _is_database_ready() -> bool:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Database readiness check failed")
        return False
    return True


@app.get("/ready")
async def readiness_check() -> dict[str, str | int]:
    """Readiness check: the database answers; reports open planner sessions."""
    if not await _is_database_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not ready",
        )
    return {
        "status": "ready",
        "database": "ok",
        "open_queues": queue_registry.open_count,
        "open_edits": edit_registry.open_count,
        "timestamp": utc_now().isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
