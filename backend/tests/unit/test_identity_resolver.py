"""
Unit tests for IdentityResolver.
"""

from uuid import uuid4

import pytest

from core.domain import PriceResolutionError, UserResolutionError
from services.identity_resolver import IdentityResolver

pytestmark = pytest.mark.asyncio


class TestResolveUserId:
    """Tests for mapping a subscription to an internal user id."""

    async def test_subscription_metadata_wins(self, db_session, test_profile, make_subscription):
        hinted_user = str(uuid4())
        subscription = make_subscription(metadata={"supabase_user_id": hinted_user})

        result = await IdentityResolver(db_session).resolve_user_id(subscription)

        assert result.is_ok
        assert result.value == hinted_user

    async def test_expanded_customer_metadata(self, db_session, make_subscription):
        customer_user = str(uuid4())
        subscription = make_subscription(
            customer={
                "id": "cus_unknown",
                "object": "customer",
                "metadata": {"supabase_user_id": customer_user},
            }
        )

        result = await IdentityResolver(db_session).resolve_user_id(subscription)

        assert result.value == customer_user

    async def test_profile_lookup_by_customer_id(
        self, db_session, test_profile, make_subscription
    ):
        subscription = make_subscription(customer={"id": "cus_test_123", "metadata": {}})

        result = await IdentityResolver(db_session).resolve_user_id(subscription)

        assert result.is_ok
        assert result.value == test_profile.id

    async def test_unknown_customer_is_unresolved(self, db_session, make_subscription):
        subscription = make_subscription(customer="cus_nobody")

        result = await IdentityResolver(db_session).resolve_user_id(subscription)

        assert not result.is_ok
        assert isinstance(result.error, UserResolutionError)
        assert "cus_nobody" in result.error.message


class TestResolvePriceDetails:
    """Tests for mapping a Stripe price to the internal catalog."""

    async def test_known_price(self, db_session, pro_price):
        result = await IdentityResolver(db_session).resolve_price_details("price_pro_monthly")

        assert result.is_ok
        assert result.value.price_id == pro_price.id
        assert result.value.plan_id == pro_price.plan_id

    async def test_unknown_price(self, db_session, pro_price):
        result = await IdentityResolver(db_session).resolve_price_details("price_missing")

        assert not result.is_ok
        assert isinstance(result.error, PriceResolutionError)
        assert result.error.code == "price_unresolved"
