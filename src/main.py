"""tasklane - project task tracking with post-commit domain events."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core import db_client
from src.core.cache_client import cache_client, get_cache_backend
from src.core.config import constants, settings
from src.core.deps import build_repositories
from src.core.errors import AppError, classify_error_with_response
from src.core.event_bus import SubscriberRegistry
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.module_registry import (
    get_all_request_registrations,
    register_all_subscribers,
    register_default_modules,
)
from src.core.pipeline import build_pipeline
from src.core.redis_client import redis_client
from src.interface.api_router import router as api_router


logger = logging.getLogger(__name__)


async def check_redis_connectivity() -> None:
    """Verify Redis connectivity (optional service). Logs a warning if unavailable but doesn't fail."""
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


def configure_app_state(app: FastAPI) -> None:
    """Build repositories, subscribers and the request pipeline from the registered modules."""
    register_default_modules()

    subscribers = SubscriberRegistry()
    register_all_subscribers(subscribers)

    app.state.subscribers = subscribers
    app.state.repositories = build_repositories(get_cache_backend())
    app.state.pipeline = build_pipeline(get_all_request_registrations(), subscribers)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    configure_logfire()
    await check_redis_connectivity()

    configure_app_state(app)
    await db_client.init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})

    yield

    await redis_client.close()
    await db_client.close_connection()


app = FastAPI(
    title="tasklane",
    description="Project task tracking with post-commit domain events",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_fastapi(app)

app.include_router(api_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors as structured error bodies."""
    response = classify_error_with_response(exc)
    if response.status_code >= constants.HTTP_SERVER_ERROR:
        logger.error("request_failed", extra={"path": request.url.path, "error": str(exc), "code": exc.code})
    return JSONResponse(content=response.to_body(), status_code=response.status_code)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)


@app.get("/health/cache")
async def cache_health_check() -> JSONResponse:
    """Cache health check endpoint."""
    if redis_client.is_available:
        connected = await redis_client.ping()
        details = redis_client.get_health_status()
    else:
        connected = await cache_client.ping()
        details = cache_client.get_health_status()

    return JSONResponse(
        content={"status": "healthy" if connected else "degraded", "cache": details},
        status_code=constants.HTTP_OK if connected else constants.HTTP_SERVICE_UNAVAILABLE,
    )
