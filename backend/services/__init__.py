"""
Service layer for billing sync and feature gating.
"""

from services.feature_access import (
    AccessContext,
    FeatureAccessService,
    FeatureCache,
    feature_cache,
    load_access_context,
)
from services.identity_resolver import IdentityResolver
from services.subscription_store import SubscriptionStore
from services.subscription_sync import SubscriptionSynchronizer
from services.webhook_dispatcher import WebhookDispatcher, WebhookOutcome

__all__ = [
    "AccessContext",
    "FeatureAccessService",
    "FeatureCache",
    "feature_cache",
    "load_access_context",
    "IdentityResolver",
    "SubscriptionStore",
    "SubscriptionSynchronizer",
    "WebhookDispatcher",
    "WebhookOutcome",
]
