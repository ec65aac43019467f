"""
Billing database models: plans, prices and subscriptions.

``plans`` and ``prices`` are the internal catalog seeded by admins;
``subscriptions`` is written exclusively by the Stripe webhook sync.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Plan(Base, TimestampMixin):
    """Product plan (e.g. Pro)."""

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[Optional[bool]] = mapped_column(Boolean, default=True, nullable=True)

    prices = relationship("Price", back_populates="plan", lazy="select")

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, name={self.name})>"


class Price(Base, TimestampMixin):
    """Billable price of a plan, mirrored from a Stripe price."""

    __tablename__ = "prices"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    plan_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_price_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    currency: Mapped[str] = mapped_column(String(10), default="usd", nullable=False)
    unit_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    interval: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    interval_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[Optional[bool]] = mapped_column(Boolean, default=True, nullable=True)

    plan = relationship("Plan", back_populates="prices", lazy="joined")

    def __repr__(self) -> str:
        return f"<Price(id={self.id}, stripe_price_id={self.stripe_price_id})>"


class Subscription(Base, TimestampMixin):
    """Canonical subscription row, one per Stripe subscription id."""

    __tablename__ = "subscriptions"

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
    plan_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    price_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("prices.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Upsert conflict key
    stripe_subscription_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    stripe_customer_id: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(String(50), nullable=False)

    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancel_at_period_end: Mapped[Optional[bool]] = mapped_column(
        Boolean, default=False, nullable=True
    )
    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    trial_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    trial_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes
    subscription_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    price = relationship("Price", lazy="joined")

    __table_args__ = (Index("ix_subscriptions_user_status", "user_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<Subscription(stripe_subscription_id={self.stripe_subscription_id}, "
            f"status={self.status})>"
        )

    @property
    def stripe_price_id(self) -> Optional[str]:
        """Stripe price id of the linked internal price, if loaded."""
        return self.price.stripe_price_id if self.price else None
