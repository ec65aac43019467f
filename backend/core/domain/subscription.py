"""Subscription domain entities."""
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional


class SubscriptionStatus(str, Enum):
    """Stripe subscription statuses."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus | None":
        """Return the matching status, or None for values Stripe may add later."""
        try:
            return cls(value)
        except ValueError:
            return None


def epoch_to_datetime(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert Stripe epoch seconds to an aware UTC datetime; None stays None."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=UTC)


@dataclass(frozen=True)
class BillingTimestamps:
    """Period, cancellation and trial timestamps in provider epoch seconds."""

    period_start: Optional[int] = None
    period_end: Optional[int] = None
    canceled_at: Optional[int] = None
    ended_at: Optional[int] = None
    trial_start: Optional[int] = None
    trial_end: Optional[int] = None

    @property
    def has_period(self) -> bool:
        return self.period_start is not None and self.period_end is not None


@dataclass(frozen=True)
class PriceDetails:
    """Internal catalog ids behind a Stripe price."""

    price_id: str
    plan_id: str


@dataclass
class CanonicalSubscription:
    """Upsert payload for the subscriptions table."""

    user_id: str
    plan_id: str
    price_id: str
    stripe_subscription_id: str
    stripe_customer_id: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        user_id: str,
        price: PriceDetails,
        stripe_subscription_id: str,
        stripe_customer_id: str,
        status: str,
        timestamps: BillingTimestamps,
        cancel_at_period_end: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "CanonicalSubscription":
        """Assemble the row, converting epoch seconds only at this point."""
        return cls(
            user_id=user_id,
            plan_id=price.plan_id,
            price_id=price.price_id,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id=stripe_customer_id,
            status=status,
            current_period_start=epoch_to_datetime(timestamps.period_start),
            current_period_end=epoch_to_datetime(timestamps.period_end),
            cancel_at_period_end=bool(cancel_at_period_end),
            canceled_at=epoch_to_datetime(timestamps.canceled_at),
            ended_at=epoch_to_datetime(timestamps.ended_at),
            trial_start=epoch_to_datetime(timestamps.trial_start),
            trial_end=epoch_to_datetime(timestamps.trial_end),
            metadata=dict(metadata or {}),
        )

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the subscriptions table."""
        return {
            "user_id": self.user_id,
            "plan_id": self.plan_id,
            "price_id": self.price_id,
            "stripe_subscription_id": self.stripe_subscription_id,
            "stripe_customer_id": self.stripe_customer_id,
            "status": self.status,
            "current_period_start": self.current_period_start,
            "current_period_end": self.current_period_end,
            "cancel_at_period_end": self.cancel_at_period_end,
            "canceled_at": self.canceled_at,
            "ended_at": self.ended_at,
            "trial_start": self.trial_start,
            "trial_end": self.trial_end,
            "metadata": self.metadata,
        }
