"""Tests for health, readiness and metrics endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from clipvote.api.deps import get_redis


@pytest.mark.unit
async def test_health_endpoint(client: AsyncClient):
    """Test /api/v1/health returns ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.unit
async def test_ready_when_dependencies_up(client: AsyncClient):
    with patch("clipvote.api.v1.health.check_db_connection", AsyncMock(return_value=True)):
        response = await client.get("/api/v1/ready")

    assert response.status_code == 200
    assert response.json()["dependencies"] == {"postgres": "ok", "redis": "ok"}


@pytest.mark.unit
async def test_not_ready_without_redis(app, client: AsyncClient):
    app.dependency_overrides[get_redis] = lambda: None
    with patch("clipvote.api.v1.health.check_db_connection", AsyncMock(return_value=True)):
        response = await client.get("/api/v1/ready")

    assert response.status_code == 503
    assert response.json()["dependencies"]["redis"] == "not_initialized"


@pytest.mark.unit
async def test_metrics_endpoint(client: AsyncClient):
    response = await client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert "clipvote_events_pushed_total" in response.text


@pytest.mark.unit
async def test_openapi_schema(client: AsyncClient):
    """Test OpenAPI schema is available."""
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    paths = response.json()["paths"]
    assert "/api/v1/queues/health" in paths
    assert "/api/v1/dlq/{queue}/replay" in paths
    assert "/api/v1/leaderboard/clips" in paths
