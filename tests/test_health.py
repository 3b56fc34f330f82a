# ==============================================================================
# HEALTH ENDPOINT TESTS
# ==============================================================================
# Tests for root and health check endpoints
# ==============================================================================

import pytest
from httpx import AsyncClient


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()

        assert "name" in data
        assert "version" in data
        assert data["health"] == "/health"
        assert data["filters"] == "/api/v1/filters/operators"

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        """Test health endpoint reports every connection."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "healthy"
        assert data["connections"] == {"main": "initialized"}

    @pytest.mark.asyncio
    async def test_health_degraded_when_connection_lost(self, client: AsyncClient, container):
        """Test a failed connection turns the status degraded."""
        await container.registry.mark_failed("main")

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["connections"] == {"main": "failed"}

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client: AsyncClient):
        """Test the X-Request-ID header is kept and timing is reported."""
        response = await client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert "X-Response-Time" in response.headers
