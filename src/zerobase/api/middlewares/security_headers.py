"""Helmet-style security headers."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.zerobase.core.config import Settings

# Responses that may carry a raw API key, a session token or user records.
_NO_CACHE_PREFIXES = ("/api/auth/", "/api/projects")

# Swagger UI loads its bundle and styles from jsDelivr
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "img-src 'self' data: cdn.jsdelivr.net; "
    "frame-ancestors 'none'"
)
API_CSP = "default-src 'none'; frame-ancestors 'none'"


def security_headers(settings: Settings) -> dict[str, str]:
    """Headers for every response. HSTS is only sent in production."""
    headers = {
        "Content-Security-Policy": DOCS_CSP if settings.enable_openapi else API_CSP,
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }
    if settings.app_env == "production":
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds ``headers`` to every HTTP response and ``no-store`` where credentials may appear."""

    def __init__(self, app: ASGIApp, headers: dict[str, str]):
        super().__init__(app)
        self.headers = headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for header, value in self.headers.items():
            response.headers.setdefault(header, value)
        if request.url.path.startswith(_NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        return response
