"""
Subscription state synchronizer.

The one place where a Stripe subscription becomes a persisted
``subscriptions`` row. Each step is a precondition for the next and any
failure returns before anything is written.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain import (
    CanonicalSubscription,
    Err,
    InvalidSubscriptionError,
    Ok,
    Result,
    SubscriptionStatus,
)
from core.plans import PERIOD_BEARING_STATUSES
from services.billing_normalizer import (
    extract_timestamps,
    get_customer_id,
    get_single_price_id,
)
from services.feature_access import FeatureCache, feature_cache
from services.identity_resolver import IdentityResolver
from services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)


class SubscriptionSynchronizer:
    """Builds and upserts canonical subscription rows from Stripe subscriptions."""

    def __init__(self, db: AsyncSession, cache: Optional[FeatureCache] = None):
        """
        Initialize the synchronizer.

        Args:
            db: Async database session
            cache: Feature cache to invalidate after writes (defaults to the process cache)
        """
        self.resolver = IdentityResolver(db)
        self.store = SubscriptionStore(db)
        self.cache = cache if cache is not None else feature_cache

    async def sync(self, subscription: dict[str, Any]) -> Result[CanonicalSubscription]:
        """
        Persist a Stripe subscription.

        Steps: resolve the user, read the single line-item price, resolve
        the internal price and plan, extract timestamps, reject live
        statuses without a billing period, then upsert once.

        Args:
            subscription: Subscription dictionary (expanded retrieve or event snapshot)

        Returns:
            Ok(CanonicalSubscription) on success, Err(BillingError) otherwise
        """
        stripe_subscription_id = subscription.get("id")
        if not stripe_subscription_id:
            return Err(InvalidSubscriptionError("Subscription object has no id"))

        customer_id = get_customer_id(subscription)
        if not customer_id:
            return Err(
                InvalidSubscriptionError(f"Subscription {stripe_subscription_id} has no customer")
            )

        status = subscription.get("status")
        if not isinstance(status, str) or not status:
            return Err(
                InvalidSubscriptionError(f"Subscription {stripe_subscription_id} has no status")
            )
        if SubscriptionStatus.parse(status) is None:
            logger.warning(
                "Unknown subscription status %r on %s, storing as-is",
                status,
                stripe_subscription_id,
                extra={"subscription_id": stripe_subscription_id},
            )

        user_result = await self.resolver.resolve_user_id(subscription)
        if not user_result.is_ok:
            return user_result

        price_id_result = get_single_price_id(subscription)
        if not price_id_result.is_ok:
            return price_id_result

        price_result = await self.resolver.resolve_price_details(price_id_result.value)
        if not price_result.is_ok:
            return price_result

        timestamps = extract_timestamps(subscription)
        if status in PERIOD_BEARING_STATUSES and not timestamps.has_period:
            return Err(
                InvalidSubscriptionError(
                    f"Subscription {stripe_subscription_id} is {status} "
                    "but has no current billing period"
                )
            )

        metadata = subscription.get("metadata")
        record = CanonicalSubscription.build(
            user_id=user_result.value,
            price=price_result.value,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id=customer_id,
            status=status,
            timestamps=timestamps,
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            metadata=metadata if isinstance(metadata, dict) else None,
        )

        write_result = await self.store.upsert(record)
        if not write_result.is_ok:
            return write_result

        self.cache.invalidate_user(record.user_id)
        logger.info(
            "Synced subscription %s for user %s (status=%s)",
            stripe_subscription_id,
            record.user_id,
            status,
            extra={"subscription_id": stripe_subscription_id},
        )
        return Ok(record)

    async def mark_past_due(self, stripe_subscription_id: str) -> Result[list[str]]:
        """Set a stored subscription's status to past_due without a full resync."""
        result = await self.store.mark_status(
            stripe_subscription_id, SubscriptionStatus.PAST_DUE.value
        )
        if result.is_ok:
            for user_id in result.value:
                self.cache.invalidate_user(user_id)
        return result
