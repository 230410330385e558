"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.zerobase.core.config import Settings

from .access_cors import access_cors_middleware
from .logging_context import logging_context_middleware
from .security_headers import SecurityHeadersMiddleware, security_headers

__all__ = [
    "SecurityHeadersMiddleware",
    "access_cors_middleware",
    "logging_context_middleware",
    "security_headers",
    "setup_middlewares",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Middleware added last is outermost and runs first.
    """
    # Access-gate CORS echo - innermost, sees request.state set by the gate
    @app.middleware("http")
    async def _access_cors(request, call_next):  # type: ignore[no-untyped-def]
        return await access_cors_middleware(request, call_next)

    # Logging context - binds request_id to structlog context
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    app.add_middleware(SecurityHeadersMiddleware, headers=security_headers(settings))

    # CORS for the dashboard origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    # Correlation ID - generates/propagates X-Request-ID (outermost)
    app.add_middleware(CorrelationIdMiddleware)
