"""
Feature gating response schemas.
"""

from pydantic import Field

from api.schemas.billing import CamelModel


class FeatureMapResponse(CamelModel):
    """Features available to the caller's tier."""

    stripe_price_id: str | None = Field(None, description="Active Stripe price; null for free tier")
    features: dict[str, bool | str] = Field(default_factory=dict)


class FeatureDecisionResponse(CamelModel):
    """Allow/deny outcome of one feature."""

    feature: str
    allowed: bool
    limit: bool | str | None = None
    remaining: int | None = None
    reason: str
