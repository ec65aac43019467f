"""
Integration tests for project endpoints and their plan gating.
"""

from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.database.models import Lead, Project

pytestmark = pytest.mark.asyncio

settings = get_settings()


@pytest.fixture
async def project(db_session, test_profile) -> Project:
    project = Project(id=str(uuid4()), user_id=test_profile.id, name="Beta", slug="beta")
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


class TestProjectLimit:
    """Tests for GET /projects/limit."""

    async def test_free_user_quota(self, async_client: AsyncClient, auth_headers: dict, feature_flags):
        response = await async_client.get("/api/v1/projects/limit", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "count": 0,
            "limit": "1",
            "remaining": 1,
            "canCreate": True,
            "reason": "within_limit",
        }

    async def test_quota_counts_existing_projects(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags, project
    ):
        response = await async_client.get("/api/v1/projects/limit", headers=auth_headers)

        assert response.json()["count"] == 1
        assert response.json()["canCreate"] is False


class TestCreateProject:
    """Tests for POST /projects."""

    async def test_create_project(self, async_client: AsyncClient, auth_headers: dict, feature_flags):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "My Launch Page"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "My Launch Page"
        assert data["slug"] == "my-launch-page"
        assert data["showBranding"] is True

    async def test_free_limit_returns_403(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags, project
    ):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Second"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_pro_user_not_limited(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags, pro_subscription, project
    ):
        for name in ("Second", "Third"):
            response = await async_client.post(
                "/api/v1/projects", json={"name": name}, headers=auth_headers
            )
            assert response.status_code == status.HTTP_201_CREATED

        listed = await async_client.get("/api/v1/projects", headers=auth_headers)
        assert len(listed.json()) == 3

    async def test_taken_slug_gets_suffix(
        self, async_client: AsyncClient, auth_headers: dict, feature_flags, pro_subscription, project
    ):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Beta", "slug": "beta"}, headers=auth_headers
        )

        assert response.json()["slug"] == "beta-1"

    async def test_missing_flag_row_denies_creation(
        self, async_client: AsyncClient, auth_headers: dict
    ):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Unconfigured"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestBranding:
    """Tests for GET /projects/{id}/can-remove-branding (public)."""

    async def test_free_owner(self, async_client: AsyncClient, feature_flags, project):
        response = await async_client.get(f"/api/v1/projects/{project.id}/can-remove-branding")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"canRemoveBranding": False, "reason": "no_subscription"}

    async def test_pro_owner(self, async_client: AsyncClient, feature_flags, pro_subscription, project):
        response = await async_client.get(f"/api/v1/projects/{project.id}/can-remove-branding")

        assert response.json() == {"canRemoveBranding": True, "reason": "allowed"}

    async def test_unknown_project(self, async_client: AsyncClient):
        response = await async_client.get(f"/api/v1/projects/{uuid4()}/can-remove-branding")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestEmailLimit:
    """Tests for GET /projects/{id}/email-limit."""

    async def test_owner_sees_quota(
        self, async_client: AsyncClient, db_session, auth_headers: dict, feature_flags, project
    ):
        db_session.add_all(
            Lead(project_id=project.id, email=f"lead{i}@example.com") for i in range(6)
        )
        await db_session.commit()

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/email-limit", headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["count"] == 6
        assert data["remaining"] == 4
        assert data["canCollect"] is True
        assert data["showWarning"] is True
        assert data["warningMessage"].startswith("You have 4 emails left")

    async def test_other_user_gets_404(
        self, async_client: AsyncClient, new_profile, feature_flags, project
    ):
        token = TokenService(
            secret_key=settings.supabase_jwt_secret,
            audience=settings.supabase_jwt_audience,
        ).create_access_token(user_id=new_profile.id)

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/email-limit",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
