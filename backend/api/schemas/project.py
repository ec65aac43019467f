"""
Project, quota and lead API schemas.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from api.schemas.billing import CamelModel


class ProjectCreate(CamelModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=100, description="Project name")
    slug: Optional[str] = Field(
        None,
        min_length=3,
        max_length=100,
        description="URL-friendly project identifier (generated from the name if omitted)",
    )
    domain: Optional[str] = Field(None, max_length=255, description="Custom domain")

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        """Validate slug format (lowercase alphanumeric with hyphens)."""
        if v is None:
            return v
        if not re.match(r"^[a-z0-9-]+$", v):
            raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
        if v.startswith("-") or v.endswith("-"):
            raise ValueError("Slug cannot start or end with a hyphen")
        if "--" in v:
            raise ValueError("Slug cannot contain consecutive hyphens")
        return v


class ProjectResponse(CamelModel):
    """Project as returned to its owner."""

    id: str
    user_id: str
    name: str
    slug: Optional[str] = None
    domain: Optional[str] = None
    show_branding: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProjectLimitResponse(CamelModel):
    """Project creation quota of the caller."""

    count: int
    limit: bool | str | None = None
    remaining: Optional[int] = None
    can_create: bool
    reason: str


class BrandingResponse(CamelModel):
    """Whether a project may hide the branding badge."""

    can_remove_branding: bool
    reason: str


class EmailLimitResponse(CamelModel):
    """Email collection quota of a project."""

    count: int
    limit: bool | str | None = None
    remaining: Optional[int] = None
    can_collect: bool
    is_unlimited: bool = False
    show_warning: bool = False
    warning_message: Optional[str] = None


class LeadCreate(CamelModel):
    """Public lead-capture submission.

    Fields are optional here so missing values are answered with 400.
    """

    email: Optional[EmailStr] = None
    project_id: Optional[str] = None


class LeadResponse(CamelModel):
    """Stored lead."""

    id: str
    project_id: str
    email: str
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LeadCreatedResponse(CamelModel):
    """Result of a lead submission."""

    success: bool = True
    lead: LeadResponse
    email_limit: EmailLimitResponse
