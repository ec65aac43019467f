"""
Project API routes with plan-limit gating.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_access_context,
    get_current_user,
    get_feature_service,
    resolve_access_context,
)
from api.schemas.project import (
    BrandingResponse,
    EmailLimitResponse,
    ProjectCreate,
    ProjectLimitResponse,
    ProjectResponse,
)
from api.utils import ensure_unique_slug, generate_slug
from core.domain import NotFoundError
from infrastructure.database import get_db
from infrastructure.database.models import Profile, Project
from services.feature_access import AccessContext, FeatureAccessService
from services.lead_capture import LeadCaptureService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


async def _get_project_or_404(db: AsyncSession, project_id: str) -> Project:
    try:
        return await LeadCaptureService(db).get_project(project_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )


@router.get("/limit", response_model=ProjectLimitResponse)
async def get_project_limit(
    context: Annotated[AccessContext, Depends(get_access_context)],
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
):
    """Get the caller's project creation quota."""
    decision = await features.check_project_limit(context)
    count = await features.count_projects(context.user_id)
    return ProjectLimitResponse(
        count=count,
        limit=decision.limit,
        remaining=decision.remaining,
        can_create=decision.allowed,
        reason=decision.reason,
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: Annotated[Profile, Depends(get_current_user)],
    context: Annotated[AccessContext, Depends(get_access_context)],
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new project.

    Refused with 403 once the caller's plan project limit is reached.
    """
    decision = await features.check_project_limit(context)
    if not decision.allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Project limit reached for your plan. Upgrade to create more projects.",
        )

    slug = await ensure_unique_slug(db, project_data.slug or generate_slug(project_data.name))
    project = Project(
        user_id=current_user.id,
        name=project_data.name,
        slug=slug,
        domain=project_data.domain,
    )
    db.add(project)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A project with this slug already exists",
        )
    await db.refresh(project)

    logger.info("Created project %s for user %s", project.id, current_user.id)
    return project


@router.get("/{project_id}/can-remove-branding", response_model=BrandingResponse)
async def can_remove_branding(
    project_id: str,
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
    db: AsyncSession = Depends(get_db),
):
    """
    Check whether a project may hide the branding badge.

    Public endpoint: the published landing page asks on render.
    """
    project = await _get_project_or_404(db, project_id)
    owner_context = await resolve_access_context(db, project.user_id)
    decision = await features.can_remove_branding(owner_context)
    return BrandingResponse(
        can_remove_branding=decision.can_remove_branding,
        reason=decision.reason,
    )


@router.get("/{project_id}/email-limit", response_model=EmailLimitResponse)
async def get_email_limit(
    project_id: str,
    context: Annotated[AccessContext, Depends(get_access_context)],
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
    db: AsyncSession = Depends(get_db),
):
    """Get the email collection quota of one of the caller's projects."""
    project = await _get_project_or_404(db, project_id)
    if project.user_id != context.user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    quota = await features.check_email_collection_limit(project.id, context)
    return EmailLimitResponse.model_validate(quota, from_attributes=True)


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
):
    """List the caller's projects, newest first."""
    result = await db.execute(
        select(Project)
        .where(Project.user_id == current_user.id)
        .order_by(Project.created_at.desc())
    )
    return result.scalars().all()
