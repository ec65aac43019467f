"""Integration tests for health endpoints."""
import pytest
from fastapi import status
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestHealth:
    """Tests for liveness and readiness probes."""

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert "x-request-id" in response.headers

    async def test_health_db(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health/db")

        data = response.json()
        assert data["database"] == "connected"
        assert data["stripe_configured"] is True

    async def test_ready_lists_missing_feature_flags(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health/ready")

        data = response.json()
        assert data["ready"] is True
        assert set(data["missing_feature_flags"]) == {
            "project_limit",
            "remove_branding_on_page",
            "email_collection_limit",
        }

    async def test_ready_with_seeded_catalog(self, async_client: AsyncClient, feature_flags):
        response = await async_client.get("/api/v1/health/ready")

        assert response.json()["missing_feature_flags"] == []

    async def test_dashboard_cors_not_wildcard(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/v1/health", headers={"Origin": "https://evil.example.com"}
        )

        assert response.headers.get("access-control-allow-origin") != "*"
