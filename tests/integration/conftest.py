"""Integration fixtures: the real app against a real PostgreSQL server.

The main database from ``DATABASE_URL`` is migrated to head; every project
created through the API gets its own physical database, dropped on teardown.
Tests are skipped when the server can not be reached.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.zerobase.core.config import get_settings
from src.zerobase.core.db import dispose_engine, run_migrations_sync
from src.zerobase.main import create_app
from src.zerobase.realtime import RealtimeNotifier
from tests.utils.cleanup import drop_project


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Main-database engine with the registry migrated."""
    await dispose_engine()
    test_engine = create_async_engine(get_settings().database_url, poolclass=NullPool)
    try:
        async with test_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (OSError, SQLAlchemyError) as e:
        await test_engine.dispose()
        pytest.skip(f"PostgreSQL not reachable: {e}")

    await asyncio.to_thread(run_migrations_sync)
    yield test_engine
    await test_engine.dispose()
    # The app's pooled engine is bound to this test's event loop
    await dispose_engine()


@pytest.fixture
def app(engine: AsyncEngine) -> FastAPI:
    app = create_app()
    app.state.realtime = RealtimeNotifier()
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def create_project(client: AsyncClient) -> AsyncGenerator:
    """Provision projects through the API; all of them are dropped afterwards."""
    created: list[str] = []

    async def _create(name: str = "Integration") -> dict:
        response = await client.post("/api/projects", json={"name": name})
        assert response.status_code == 201, response.text
        data = response.json()
        created.append(data["projectId"])
        return data

    yield _create

    for project_id in created:
        await drop_project(project_id)
