"""
Lead capture service.

Stores emails submitted through a project's embedded form, enforcing the
project owner's email collection limit and recording where the visitor
came from.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from user_agents import parse as parse_ua

from core.domain import ConflictError, LimitReachedError, NotFoundError
from infrastructure.database.models import DeviceType, Lead, Project
from services.feature_access import EmailLimitStatus, FeatureAccessService, load_access_context

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str
    browser: str
    os: str


def parse_user_agent(ua_string: Optional[str]) -> DeviceInfo:
    """Classify a User-Agent into device type, browser and OS family."""
    ua = parse_ua(ua_string or "")

    if ua.is_mobile:
        device_type = DeviceType.MOBILE.value
    elif ua.is_tablet:
        device_type = DeviceType.TABLET.value
    else:
        device_type = DeviceType.DESKTOP.value

    # user_agents reports unrecognised families as "Other"
    browser = ua.browser.family if ua.browser.family and ua.browser.family != "Other" else UNKNOWN
    os_family = ua.os.family if ua.os.family and ua.os.family != "Other" else UNKNOWN

    return DeviceInfo(device_type=device_type, browser=browser, os=os_family)


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
        return True
    except ValueError:
        return False


class LeadCaptureService:
    """Service for storing lead-capture submissions."""

    def __init__(self, db: AsyncSession, feature_service: Optional[FeatureAccessService] = None):
        """
        Initialize lead capture service.

        Args:
            db: Async database session
            feature_service: Feature access service (defaults to one on ``db``)
        """
        self.db = db
        self.features = feature_service or FeatureAccessService(db)

    async def get_project(self, project_id: str) -> Project:
        """
        Get project by ID.

        Raises:
            NotFoundError: If project not found
        """
        if not _is_uuid(project_id):
            raise NotFoundError(f"Project {project_id} not found")

        result = await self.db.execute(select(Project).where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def capture(
        self,
        project_id: str,
        email: str,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
        country: Optional[str] = None,
    ) -> tuple[Lead, EmailLimitStatus]:
        """
        Store a lead for a project.

        Returns:
            The stored lead and the project's quota after the insert

        Raises:
            NotFoundError: Unknown project
            ConflictError: Email already collected for this project
            LimitReachedError: Owner's email collection limit reached
        """
        project = await self.get_project(project_id)

        existing = await self.db.execute(
            select(Lead.id).where(Lead.project_id == project.id, Lead.email == email)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Email already exists for this project")

        context = await load_access_context(self.db, project.user_id)
        # The count and the insert are not atomic: concurrent submissions can
        # each pass this check and leave a project a few leads over its cap.
        # Only the (project_id, email) unique constraint is enforced by the database.
        quota = await self.features.check_email_collection_limit(project.id, context)
        if not quota.can_collect:
            logger.info("Email collection limit reached for project %s", project.id)
            raise LimitReachedError(
                quota.warning_message or "Email collection limit reached for this project"
            )

        device = parse_user_agent(user_agent)
        lead = Lead(
            project_id=project.id,
            email=email,
            device_type=device.device_type,
            browser=device.browser,
            os=device.os,
            referer=referer or None,
            country=country or None,
        )
        self.db.add(lead)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent submission of the same email
            await self.db.rollback()
            raise ConflictError("Email already exists for this project")
        await self.db.refresh(lead)

        quota = await self.features.check_email_collection_limit(project.id, context)
        return lead, quota
