"""Request tracking middleware for graceful shutdown."""

from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.cybertask.core.shutdown import request_tracker

_UNTRACKED_PATHS = frozenset({"/health", "/metrics"})


async def request_tracking_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Count in-flight requests so shutdown can wait for them to drain."""
    if request.url.path in _UNTRACKED_PATHS:
        return await call_next(request)

    async with request_tracker.track_request():
        return await call_next(request)
