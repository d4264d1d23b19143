"""Security headers middleware (Helmet-style)."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

# Responses carrying credentials or personal data must never be cached
_NO_CACHE_PREFIXES = ("/api/auth/", "/api/users/profile")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    # Swagger UI needs inline scripts and CDN assets
    DEFAULT_CSP = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
        "img-src 'self' data: cdn.jsdelivr.net; "
        "frame-ancestors 'none'"
    )

    def __init__(
        self,
        app: ASGIApp,
        content_security_policy: str | None = None,
        strict_transport_security: str = "max-age=31536000; includeSubDomains",
        referrer_policy: str = "strict-origin-when-cross-origin",
    ):
        super().__init__(app)
        csp = content_security_policy if content_security_policy is not None else self.DEFAULT_CSP
        self.headers: dict[str, str] = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-Permitted-Cross-Domain-Policies": "none",
        }
        if csp:
            self.headers["Content-Security-Policy"] = csp
        if strict_transport_security:
            self.headers["Strict-Transport-Security"] = strict_transport_security
        if referrer_policy:
            self.headers["Referrer-Policy"] = referrer_policy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)

        if request.url.path.startswith(_NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response
