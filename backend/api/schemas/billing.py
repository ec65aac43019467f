"""
Billing and subscription request/response schemas.

Responses are serialized with camelCase keys for the web client.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases while accepting field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutRequest(CamelModel):
    """Request to create a checkout session."""

    price_id: str | None = Field(None, description="Stripe price ID (price_...)")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"priceId": "price_1Rbd4ZAO7Z9aERoyb0Y4iEGx"}},
    )


class CheckoutResponse(CamelModel):
    """Response containing the checkout session."""

    session_id: str = Field(..., description="Stripe checkout session ID")
    session_url: str | None = Field(None, description="Hosted checkout URL")


class CustomerPortalResponse(CamelModel):
    """Response containing the billing portal URL."""

    portal_url: str = Field(..., description="Stripe billing portal URL")


class WebhookResponse(CamelModel):
    """Acknowledgment returned to Stripe for a verified event."""

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processed_ok: bool
    details: str | None = None


class SubscriptionInfo(CamelModel):
    """Stored subscription as exposed to its owner."""

    id: str
    stripe_subscription_id: str
    stripe_price_id: str | None = None
    plan_id: str | None = None
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool | None = False
    canceled_at: datetime | None = None
    trial_end: datetime | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SubscriptionStatusResponse(CamelModel):
    """Current subscription state of the caller."""

    subscription: SubscriptionInfo | None = None
    is_active: bool = False
    has_scheduled_cancellation: bool = False
