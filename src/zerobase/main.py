import secrets
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.zerobase.api.dependencies import DBSession
from src.zerobase.api.middlewares import setup_middlewares
from src.zerobase.api.v1.router import api_router, ws_router
from src.zerobase.core.config import get_settings
from src.zerobase.core.db import dispose_engine, run_migrations_async
from src.zerobase.core.exceptions import UnauthorizedError, setup_exception_handlers
from src.zerobase.core.logging import get_logger, setup_logging
from src.zerobase.realtime import RealtimeNotifier

logger = get_logger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    if settings.run_migrations_on_startup:
        await run_migrations_async()
        logger.info("Main database migrations applied")

    app.state.realtime = RealtimeNotifier(
        send_timeout=settings.realtime_send_timeout,
        max_pending=settings.realtime_max_pending,
    )

    yield

    logger.info("Closing realtime connections...")
    await app.state.realtime.close()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "projects", "description": "Project provisioning, API keys and authorized origins"},
    {"name": "database", "description": "Tables, documents, indexes and extensions"},
    {"name": "auth", "description": "Authentication for a project's end users"},
    {"name": "storage", "description": "Per-project file storage and quota"},
    {"name": "logs", "description": "Per-project request audit trail"},
    {"name": "realtime", "description": "Change notifications over WebSocket"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant backend-as-a-service: one PostgreSQL database per project",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_openapi else None,
        redoc_url="/redoc" if settings.enable_openapi else None,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)

    app.include_router(api_router)
    app.include_router(ws_router)

    # Prometheus metrics instrumentation
    instrumentator = Instrumentator().instrument(app)

    # Protect /metrics endpoint if API key is configured
    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise UnauthorizedError("Invalid or missing metrics API key")

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")

    @app.get("/health", tags=["health"])
    async def health(session: DBSession) -> JSONResponse:
        """Main database reachability, process uptime and server time."""
        body: dict[str, Any] = {
            "status": "ok",
            "db": "connected",
            "uptime": round(time.monotonic() - _started_at, 3),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        try:
            await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Health check failed", error=str(e))
            body["status"] = "degraded"
            body["db"] = f"error: {e}"

        status_code = (
            status.HTTP_200_OK if body["status"] == "ok" else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return JSONResponse(content=body, status_code=status_code)

    return app


app = create_app()
