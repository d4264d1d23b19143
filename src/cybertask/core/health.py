"""Health check and metrics endpoints."""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from src.cybertask.core.config import get_settings
from src.cybertask.core.db import get_session
from src.cybertask.core.realtime import connection_manager
from src.cybertask.core.redis import get_redis
from src.cybertask.core.shutdown import request_tracker

_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0
HEALTH_CACHE_TTL = 10  # seconds


def reset_health_cache() -> None:
    """Reset health cache (tests only)."""
    global _health_cache, _health_cache_time
    _health_cache = None
    _health_cache_time = 0


async def _check_database() -> str:
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return "healthy"
    except Exception as e:
        return f"unhealthy: {e!s}"


async def _check_redis() -> str:
    redis = await get_redis()
    if redis is None:
        return "not_configured"
    try:
        await redis.ping()  # type: ignore[misc]
        return "healthy"
    except Exception as e:
        return f"unhealthy: {e!s}"


def setup_health_endpoint(app: FastAPI) -> None:
    """Register GET /health."""

    @app.get("/health", tags=["health"])
    async def health() -> JSONResponse:
        """Health check with dependency validation and a short cache."""
        global _health_cache, _health_cache_time

        now = time.time()

        if request_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_requests": request_tracker.in_flight_count,
                    "message": "Server is shutting down",
                },
                status_code=503,
            )

        if _health_cache and (now - _health_cache_time) < HEALTH_CACHE_TTL:
            cached = _health_cache.copy()
            cached["cached"] = True
            cached["cache_age_seconds"] = round(now - _health_cache_time, 1)
            status_code = 200 if cached["status"] != "unhealthy" else 503
            return JSONResponse(content=cached, status_code=status_code)

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": await _check_database(),
            "redis": await _check_redis(),
            "websocket_connections": connection_manager.connection_count,
            "cached": False,
            "timestamp": now,
        }

        if health_status["database"] != "healthy":
            health_status["status"] = "unhealthy"
        elif health_status["redis"].startswith("unhealthy"):
            # Redis is optional, so losing it only degrades the service
            health_status["status"] = "degraded"

        _health_cache = health_status
        _health_cache_time = now

        status_code = 200 if health_status["status"] != "unhealthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)


def setup_metrics(app: FastAPI) -> None:
    """Expose Prometheus metrics at /metrics, optionally behind an API key."""
    settings = get_settings()
    instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app)

    if not settings.metrics_api_key:
        instrumentator.expose(app, endpoint="/metrics", include_in_schema=False)
        return

    api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

    async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
        if (
            api_key is None
            or settings.metrics_api_key is None
            or not secrets.compare_digest(api_key, settings.metrics_api_key)
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing metrics API key",
            )

    instrumentator.expose(
        app,
        endpoint="/metrics",
        include_in_schema=False,
        dependencies=[Depends(verify_metrics_key)],
    )
