"""
Integration tests for the Stripe webhook endpoint.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from core.domain import ProviderError
from services.subscription_store import SubscriptionStore

pytestmark = pytest.mark.asyncio

WEBHOOK_URL = "/api/v1/stripe/webhook"


class TestWebhookVerification:
    """Tests for rejected deliveries."""

    async def test_missing_signature_returns_400(self, async_client: AsyncClient):
        response = await async_client.post(WEBHOOK_URL, content=b'{"id": "evt_1"}')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"].startswith("Webhook Error:")

    async def test_invalid_signature_returns_400(
        self, async_client: AsyncClient, stripe_adapter, make_event, make_subscription, signed_webhook
    ):
        body, headers = signed_webhook(make_event("customer.subscription.updated", make_subscription()))
        headers["Stripe-Signature"] = headers["Stripe-Signature"][:-4] + "0000"

        response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        stripe_adapter.retrieve_subscription.assert_not_awaited()

    async def test_unconfigured_secret_returns_500(
        self, async_client: AsyncClient, stripe_adapter, make_event, signed_webhook
    ):
        stripe_adapter.webhook_secret = None
        body, headers = signed_webhook(make_event("customer.created", {}))

        response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


class TestWebhookProcessing:
    """Tests for acknowledged deliveries."""

    async def test_subscription_created_is_synced(
        self,
        async_client: AsyncClient,
        db_session,
        stripe_adapter,
        test_profile,
        pro_price,
        make_event,
        make_subscription,
        signed_webhook,
    ):
        subscription = make_subscription(subscription_id="sub_webhook")
        stripe_adapter.retrieve_subscription.return_value = subscription
        body, headers = signed_webhook(
            make_event("customer.subscription.created", subscription, event_id="evt_created")
        )

        response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data == {
            "received": True,
            "eventId": "evt_created",
            "eventType": "customer.subscription.created",
            "processedOk": True,
            "details": None,
        }
        stored = await SubscriptionStore(db_session).get_by_stripe_id("sub_webhook")
        assert stored.user_id == test_profile.id

    async def test_processing_failure_still_acknowledged(
        self,
        async_client: AsyncClient,
        stripe_adapter,
        make_event,
        make_subscription,
        signed_webhook,
    ):
        stripe_adapter.retrieve_subscription.side_effect = ProviderError(
            "Stripe unavailable", transient=True
        )
        body, headers = signed_webhook(
            make_event("customer.subscription.updated", make_subscription())
        )

        response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["received"] is True
        assert data["processedOk"] is False
        assert data["details"] == "Stripe unavailable"

    async def test_unhandled_event_acknowledged(
        self, async_client: AsyncClient, make_event, signed_webhook
    ):
        body, headers = signed_webhook(make_event("product.created", {"id": "prod_1"}))

        response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["details"] == "Unhandled event type: product.created"

    async def test_upgrade_takes_effect_on_next_request(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        stripe_adapter,
        test_profile,
        pro_price,
        feature_flags,
        make_event,
        make_subscription,
        signed_webhook,
    ):
        before = await async_client.get("/api/v1/features", headers=auth_headers)
        assert before.json()["features"]["project_limit"] == "1"

        subscription = make_subscription(subscription_id="sub_upgrade")
        stripe_adapter.retrieve_subscription.return_value = subscription
        body, headers = signed_webhook(make_event("customer.subscription.created", subscription))
        await async_client.post(WEBHOOK_URL, content=body, headers=headers)

        after = await async_client.get("/api/v1/features", headers=auth_headers)
        assert after.json()["stripePriceId"] == "price_pro_monthly"
        assert after.json()["features"]["project_limit"] == "unlimited"
