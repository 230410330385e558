"""Database engine management.

The main database holds the project registry and uses a pooled engine.
Tenant databases are never pooled: every operation opens a fresh autocommit
connection to the project's own database and closes it when done.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.zerobase.core.config import get_settings

_engine: AsyncEngine | None = None

TenantConnector = Callable[[str], AbstractAsyncContextManager[AsyncConnection]]


def get_engine() -> AsyncEngine:
    """Get or create the main database engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return _engine


async def dispose_engine() -> None:
    """Dispose the main database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def locate_tenant_database(project_id: str, base_url: str | None = None) -> URL:
    """Map a project id to its physical database on the shared server.

    Same host and credentials as the main database, database name swapped for
    the project id. No validation happens here: callers pass ids that came from
    a known project record.
    """
    if base_url is None:
        base_url = get_settings().database_url
    return make_url(base_url).set(database=project_id)


@asynccontextmanager
async def tenant_connection(project_id: str) -> AsyncGenerator[AsyncConnection]:
    """Open a one-off autocommit connection to a project's database."""
    engine = create_async_engine(
        locate_tenant_database(project_id),
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
    )
    try:
        async with engine.connect() as connection:
            yield connection
    finally:
        await engine.dispose()


@asynccontextmanager
async def admin_connection() -> AsyncGenerator[AsyncConnection]:
    """Autocommit connection to the main database, for CREATE DATABASE."""
    async with get_engine().connect() as connection:
        connection = await connection.execution_options(isolation_level="AUTOCOMMIT")
        yield connection
