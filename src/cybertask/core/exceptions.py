"""Application error type and exception handlers.

Every error response uses the same shape:
    {"success": false, "message": ..., "error": CODE, "request_id": ...}
"""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.cybertask.core.logging import get_logger

logger = get_logger(__name__)

# SQLSTATE codes (PostgreSQL)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


class AppError(Exception):
    """Operational error carrying an HTTP status and a machine-readable code."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "INTERNAL_ERROR",
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def __repr__(self) -> str:
        return f"AppError({self.status_code}, {self.code!r}, {self.message!r})"


def error_body(message: str, code: str, **extra: Any) -> dict[str, Any]:
    """Build the error envelope, including the current request_id."""
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "error": code,
        "request_id": correlation_id.get(),
    }
    body.update(extra)
    return body


def _error_response(status_code: int, message: str, code: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, code, **extra))


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_integrity_error(exc: IntegrityError) -> AppError:
    """Map a database constraint violation onto an AppError."""
    state = _sqlstate(exc)
    text = str(exc.orig).lower()

    if state == _UNIQUE_VIOLATION or "unique" in text or "duplicate key" in text:
        return AppError("Duplicate entry", status.HTTP_409_CONFLICT, "DUPLICATE_ENTRY")
    if state == _FOREIGN_KEY_VIOLATION or "foreign key" in text:
        return AppError(
            "Foreign key constraint failed",
            status.HTTP_400_BAD_REQUEST,
            "FOREIGN_KEY_CONSTRAINT",
        )
    return AppError("Database error", status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR")


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers that translate every failure into the error envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Application error",
                code=exc.code,
                message=exc.message,
                path=request.url.path,
            )
        return _error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Validation failed",
            "VALIDATION_ERROR",
            errors=_validation_errors(exc),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        error = translate_integrity_error(exc)
        logger.warning("Integrity error", code=error.code, path=request.url.path)
        return _error_response(error.status_code, error.message, error.code)

    @app.exception_handler(NoResultFound)
    async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
        return _error_response(status.HTTP_404_NOT_FOUND, "Record not found", "RECORD_NOT_FOUND")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Database error", exc_info=exc, path=request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error", "DATABASE_ERROR"
        )

    @app.exception_handler(ExpiredSignatureError)
    async def expired_token_handler(request: Request, exc: ExpiredSignatureError) -> JSONResponse:
        return _error_response(status.HTTP_401_UNAUTHORIZED, "Token expired", "TOKEN_EXPIRED")

    @app.exception_handler(JWTError)
    async def jwt_error_handler(request: Request, exc: JWTError) -> JSONResponse:
        return _error_response(status.HTTP_401_UNAUTHORIZED, "Invalid token", "INVALID_TOKEN")

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return _error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            f"Rate limit exceeded: {exc.detail}",
            "RATE_LIMIT_EXCEEDED",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return _error_response(
                exc.status_code,
                f"Route {request.method} {request.url.path} not found",
                "ROUTE_NOT_FOUND",
            )
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return _error_response(exc.status_code, "Method not allowed", "METHOD_NOT_ALLOWED")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), "HTTP_ERROR"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=correlation_id.get(),
            path=request.url.path,
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR"
        )
