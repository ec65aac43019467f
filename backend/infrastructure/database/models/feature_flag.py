"""
Feature flag database model.

``price_configs`` is a JSON list of ``{"price_id": <stripe price id | null>,
"limit": <bool | "unlimited" | "<n>">}``. A ``null`` price id is the free tier.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class FeatureFlag(Base, TimestampMixin):
    """Admin-managed tier-to-limit table for one gated feature."""

    __tablename__ = "feature_flags"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_configs: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<FeatureFlag(name={self.name})>"
