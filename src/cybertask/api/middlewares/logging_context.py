"""Binds the correlation id to the structlog context for each request."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.cybertask.core.logging import bind_request_context, clear_request_context


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    clear_request_context()
    bind_request_context(correlation_id.get())
    try:
        return await call_next(request)
    finally:
        clear_request_context()
