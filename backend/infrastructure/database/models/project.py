"""
Project and lead database models.
"""

from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class DeviceType(str, Enum):
    """Device categories recorded on leads."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class Project(Base, TimestampMixin):
    """Landing page project owned by a user."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    show_branding: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    leads = relationship(
        "Lead",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, slug={self.slug})>"


class Lead(Base, TimestampMixin):
    """Email collected by a project's lead-capture form."""

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    device_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    referer: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    project = relationship("Project", back_populates="leads")

    __table_args__ = (UniqueConstraint("project_id", "email", name="uq_leads_project_email"),)

    def __repr__(self) -> str:
        return f"<Lead(project_id={self.project_id}, email={self.email})>"
