from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.cybertask.api.middlewares import setup_middlewares
from src.cybertask.api.routes.router import api_router
from src.cybertask.core.config import get_settings
from src.cybertask.core.db import dispose_engine, run_migrations_async
from src.cybertask.core.exceptions import setup_exception_handlers
from src.cybertask.core.health import setup_health_endpoint, setup_metrics
from src.cybertask.core.logging import get_logger, setup_logging
from src.cybertask.core.rate_limit import limiter
from src.cybertask.core.redis import close_redis
from src.cybertask.core.shutdown import request_tracker

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}", environment=settings.app_env)

    if settings.run_migrations_on_startup:
        logger.info("Applying database migrations")
        await run_migrations_async()

    yield

    grace_period = settings.shutdown_grace_period
    logger.info(
        f"Shutdown initiated, waiting for {request_tracker.in_flight_count} in-flight requests..."
    )
    await request_tracker.start_shutdown()

    drained = await request_tracker.wait_for_drain(timeout=grace_period)
    if not drained:
        logger.warning(
            f"Shutdown timeout after {grace_period}s - "
            f"{request_tracker.in_flight_count} requests may not have completed"
        )

    logger.info("Closing connections...")
    await close_redis()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Registration, login and token rotation"},
    {"name": "users", "description": "Profiles and user administration"},
    {"name": "projects", "description": "Projects and membership"},
    {"name": "tasks", "description": "Tasks, comments and dependencies"},
    {"name": "notifications", "description": "Per-user notification inbox"},
    {"name": "dashboard", "description": "Aggregate task statistics"},
    {"name": "realtime", "description": "WebSocket push channel"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Task and project management API with real-time updates",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
        docs_url="/docs" if settings.enable_openapi else None,
        redoc_url="/redoc" if settings.enable_openapi else None,
    )

    app.state.limiter = limiter
    setup_exception_handlers(app)
    setup_middlewares(app, settings)

    app.include_router(api_router)

    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
