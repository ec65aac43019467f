"""
Public lead-capture API route.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.project import (
    EmailLimitResponse,
    LeadCreate,
    LeadCreatedResponse,
    LeadResponse,
)
from core.domain import ConflictError, LimitReachedError, NotFoundError
from infrastructure.database import get_db
from services.lead_capture import LeadCaptureService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("", response_model=LeadCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("leads"))
async def create_lead(
    request: Request,
    lead_data: LeadCreate,
    user_agent: Annotated[str | None, Header()] = None,
    referer: Annotated[str | None, Header()] = None,
    country: Annotated[str | None, Header(alias="x-vercel-ip-country")] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Collect an email from a project's embedded form.

    Public endpoint; called cross-origin from published landing pages.
    """
    if not lead_data.email or not lead_data.project_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing email or projectId",
        )

    service = LeadCaptureService(db)
    try:
        lead, quota = await service.capture(
            project_id=lead_data.project_id,
            email=str(lead_data.email),
            user_agent=user_agent,
            referer=referer,
            country=country,
        )
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except LimitReachedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except asyncio.TimeoutError:
        logger.error("Subscription lookup timed out for project %s", lead_data.project_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Subscription lookup timed out",
        )

    return LeadCreatedResponse(
        lead=LeadResponse.model_validate(lead),
        email_limit=EmailLimitResponse.model_validate(quota, from_attributes=True),
    )
