"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.cybertask.core.config import Settings
from src.cybertask.core.rate_limit import global_rate_limit_middleware

from .logging_context import logging_context_middleware
from .request_tracking import request_tracking_middleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "setup_middlewares",
    "SecurityHeadersMiddleware",
    "logging_context_middleware",
    "request_tracking_middleware",
    "global_rate_limit_middleware",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Middleware order matters - the last one added runs first on a request, so
    the correlation id is assigned before logging context is bound.
    """

    @app.middleware("http")
    async def _global_rate_limit(request, call_next):  # type: ignore[no-untyped-def]
        return await global_rate_limit_middleware(request, call_next)

    @app.middleware("http")
    async def _request_tracking(request, call_next):  # type: ignore[no-untyped-def]
        return await request_tracking_middleware(request, call_next)

    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    csp = None
    if not settings.enable_openapi and settings.csp_production:
        csp = settings.csp_production
    app.add_middleware(SecurityHeadersMiddleware, content_security_policy=csp)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(CorrelationIdMiddleware)
