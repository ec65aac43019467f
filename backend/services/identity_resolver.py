"""
Internal identity resolver.

Maps Stripe references to internal records: a subscription's customer to
a profile id, and a Stripe price id to the internal price and plan.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain import (
    Err,
    Ok,
    PriceDetails,
    PriceResolutionError,
    Result,
    UserResolutionError,
)
from infrastructure.database.models import Price, Profile
from services.billing_normalizer import (
    get_customer_id,
    get_expanded_customer,
    get_user_id_hint,
)

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves Stripe identifiers against the internal catalog and profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_user_id(self, subscription: dict[str, Any]) -> Result[str]:
        """
        Resolve the internal user id for a subscription.

        Tries, in order: the subscription's metadata, the expanded
        customer's metadata, then the profile holding the customer id.

        Args:
            subscription: Subscription dictionary

        Returns:
            Ok(user_id) or Err(UserResolutionError)
        """
        user_id = get_user_id_hint(subscription)
        if user_id:
            return Ok(user_id)

        user_id = get_user_id_hint(get_expanded_customer(subscription))
        if user_id:
            return Ok(user_id)

        customer_id = get_customer_id(subscription)
        if customer_id:
            result = await self.db.execute(
                select(Profile.id).where(Profile.stripe_customer_id == customer_id)
            )
            user_id = result.scalar_one_or_none()
            if user_id:
                logger.debug("Resolved user %s from customer %s", user_id, customer_id)
                return Ok(user_id)

        return Err(
            UserResolutionError(
                f"No user found for subscription {subscription.get('id')} "
                f"(customer {customer_id or 'missing'})"
            )
        )

    async def resolve_price_details(self, stripe_price_id: str) -> Result[PriceDetails]:
        """
        Look up the internal price and plan for a Stripe price id.

        A miss means the catalog was not seeded for this price.
        """
        result = await self.db.execute(
            select(Price.id, Price.plan_id).where(Price.stripe_price_id == stripe_price_id)
        )
        row = result.one_or_none()
        if row is None:
            return Err(
                PriceResolutionError(f"Stripe price {stripe_price_id} is not in the price catalog")
            )

        return Ok(PriceDetails(price_id=row.id, plan_id=row.plan_id))
