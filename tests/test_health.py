"""Health and metrics endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.asyncio


async def test_health_ok(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["db"] == "connected"
    assert data["uptime"] >= 0
    assert data["timestamp"]


@pytest.mark.parametrize(
    "error",
    [
        OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused")),
        ConnectionRefusedError("connection refused"),
    ],
)
async def test_health_degraded_when_database_unreachable(client: AsyncClient, db_session, error):
    db_session.error = error

    response = await client.get("/health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["db"].startswith("error: ")


async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"
    assert response.headers["x-request-id"]


async def test_metrics_exposed(client: AsyncClient):
    await client.get("/health")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "http_request" in response.text
