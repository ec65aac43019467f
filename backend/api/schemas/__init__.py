"""
API request and response schemas.
"""

from .billing import (
    CheckoutRequest,
    CheckoutResponse,
    CustomerPortalResponse,
    SubscriptionInfo,
    SubscriptionStatusResponse,
    WebhookResponse,
)
from .features import FeatureDecisionResponse, FeatureMapResponse
from .project import (
    BrandingResponse,
    EmailLimitResponse,
    LeadCreate,
    LeadCreatedResponse,
    LeadResponse,
    ProjectCreate,
    ProjectLimitResponse,
    ProjectResponse,
)

__all__ = [
    "CheckoutRequest",
    "CheckoutResponse",
    "CustomerPortalResponse",
    "SubscriptionInfo",
    "SubscriptionStatusResponse",
    "WebhookResponse",
    "FeatureDecisionResponse",
    "FeatureMapResponse",
    "BrandingResponse",
    "EmailLimitResponse",
    "LeadCreate",
    "LeadCreatedResponse",
    "LeadResponse",
    "ProjectCreate",
    "ProjectLimitResponse",
    "ProjectResponse",
]
