"""
Integration tests for feature flag endpoints.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestFeatureMap:
    """Tests for GET /features."""

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/features")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/v1/features", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_free_tier(self, async_client: AsyncClient, auth_headers: dict, feature_flags):
        response = await async_client.get("/api/v1/features", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "stripePriceId": None,
            "features": {"email_collection_limit": "10", "project_limit": "1"},
        }

    async def test_pro_tier(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags, pro_subscription
    ):
        response = await async_client.get("/api/v1/features", headers=auth_headers)

        assert response.json() == {
            "stripePriceId": "price_pro_monthly",
            "features": {
                "email_collection_limit": "unlimited",
                "project_limit": "unlimited",
                "remove_branding_on_page": True,
            },
        }

    async def test_token_from_cookie(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags
    ):
        token = auth_headers["Authorization"].split(" ", 1)[1]

        response = await async_client.get(
            "/api/v1/features", cookies={"sb-access-token": token}
        )

        assert response.status_code == status.HTTP_200_OK


class TestFeatureDecision:
    """Tests for GET /features/{feature_name}."""

    async def test_within_limit(self, async_client: AsyncClient, auth_headers: dict, feature_flags):
        response = await async_client.get(
            "/api/v1/features/email_collection_limit?usage=4", headers=auth_headers
        )

        assert response.json() == {
            "feature": "email_collection_limit",
            "allowed": True,
            "limit": "10",
            "remaining": 6,
            "reason": "within_limit",
        }

    async def test_limit_reached(self, async_client: AsyncClient, auth_headers: dict, feature_flags):
        response = await async_client.get(
            "/api/v1/features/project_limit?usage=1", headers=auth_headers
        )

        data = response.json()
        assert data["allowed"] is False
        assert data["remaining"] == 0
        assert data["reason"] == "limit_reached"

    async def test_boolean_feature(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags
    ):
        response = await async_client.get(
            "/api/v1/features/remove_branding_on_page", headers=auth_headers
        )

        assert response.json()["allowed"] is False
        assert response.json()["limit"] is False

    async def test_unconfigured_known_feature_denied(
        self, async_client: AsyncClient, auth_headers: dict
    ):
        response = await async_client.get("/api/v1/features/project_limit", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["allowed"] is False
        assert response.json()["reason"] == "not_configured"

    async def test_unknown_feature_returns_404(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags
    ):
        response = await async_client.get("/api/v1/features/teleport", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
