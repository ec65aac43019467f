"""
Stripe webhook event dispatcher.

Verifies the delivery, routes it by event type and always produces a
structured outcome. Once the signature checks out the event is
acknowledged even if processing fails, so Stripe does not keep
redelivering events that fail on our data; failures surface in logs.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments import StripeAdapter
from core.domain import BillingError, Err, InvalidSubscriptionError, Ok, ProviderError, Result
from services.billing_normalizer import get_customer_id, get_subscription_reference
from services.feature_access import FeatureCache
from services.subscription_sync import SubscriptionSynchronizer

logger = logging.getLogger(__name__)

SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
SUBSCRIPTION_RESUMED = "customer.subscription.resumed"
CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"

SUBSCRIPTION_LIFECYCLE_EVENTS = frozenset(
    {SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED, SUBSCRIPTION_RESUMED}
)


@dataclass
class WebhookOutcome:
    """Report of one verified webhook delivery."""

    event_id: Optional[str]
    event_type: Optional[str]
    processed_ok: bool
    detail: Optional[str] = None
    error_code: Optional[str] = None
    acknowledged: bool = True

    def to_response(self) -> dict[str, Any]:
        return {
            "received": self.acknowledged,
            "eventId": self.event_id,
            "eventType": self.event_type,
            "processedOk": self.processed_ok,
            "details": self.detail,
        }


Handler = Callable[[dict[str, Any], str], Awaitable[Result[Any]]]


class WebhookDispatcher:
    """
    Entry point for Stripe webhook deliveries.

    Subscription-affecting events re-fetch the full subscription from
    Stripe before syncing rather than trusting the webhook payload.
    """

    def __init__(
        self,
        db: AsyncSession,
        stripe_adapter: StripeAdapter,
        cache: Optional[FeatureCache] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            db: Async database session
            stripe_adapter: Stripe adapter holding the webhook secret
            cache: Feature cache invalidated after subscription writes
        """
        self.stripe = stripe_adapter
        self.synchronizer = SubscriptionSynchronizer(db, cache=cache)
        self._routes: dict[str, Handler] = {
            event_type: self._handle_subscription_event
            for event_type in SUBSCRIPTION_LIFECYCLE_EVENTS
        }
        self._routes.update({
            CHECKOUT_SESSION_COMPLETED: self._handle_checkout_completed,
            INVOICE_PAYMENT_SUCCEEDED: self._handle_invoice_paid,
            INVOICE_PAYMENT_FAILED: self._handle_invoice_failed,
        })

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookOutcome:
        """
        Verify and process one webhook delivery.

        Args:
            raw_body: Exact request body bytes
            signature: Stripe-Signature header value

        Returns:
            WebhookOutcome for the verified event

        Raises:
            SignatureVerificationError: If verification fails; nothing is processed
            ConfigurationError: If the webhook secret is not configured
        """
        event = self.stripe.construct_event(raw_body, signature)
        event_id = event.get("id")
        event_type = event.get("type")
        log_extra = {"event_id": event_id, "event_type": event_type}

        handler = self._routes.get(event_type)
        if handler is None:
            logger.info("Unhandled event type %s (%s)", event_type, event_id, extra=log_extra)
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                processed_ok=True,
                detail=f"Unhandled event type: {event_type}",
            )

        data = event.get("data")
        event_object = data.get("object") if isinstance(data, dict) else None
        if not isinstance(event_object, dict):
            event_object = {}

        try:
            result = await handler(event_object, event_type)
        except BillingError as e:
            result = Err(e)
        except Exception as e:
            logger.exception(
                "Unexpected error processing %s (%s): %s", event_type, event_id, e, extra=log_extra
            )
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                processed_ok=False,
                detail="Critical internal error during event processing.",
                error_code="internal_error",
            )

        if isinstance(result, Err):
            logger.error(
                "Failed to process %s (%s): [%s] %s",
                event_type,
                event_id,
                result.error.code,
                result.error.message,
                extra=log_extra,
            )
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                processed_ok=False,
                detail=result.error.message,
                error_code=result.error.code,
            )

        detail = result.value if isinstance(result.value, str) else None
        logger.info("Processed %s (%s)", event_type, event_id, extra=log_extra)
        return WebhookOutcome(
            event_id=event_id,
            event_type=event_type,
            processed_ok=True,
            detail=detail,
        )

    async def _retrieve_and_sync(self, subscription_id: str) -> Result[Any]:
        try:
            subscription = await self.stripe.retrieve_subscription(subscription_id)
        except ProviderError as e:
            return Err(e)
        return await self.synchronizer.sync(subscription)

    async def _handle_subscription_event(
        self, subscription: dict[str, Any], event_type: str
    ) -> Result[Any]:
        subscription_id = subscription.get("id")
        if not subscription_id:
            return Err(InvalidSubscriptionError(f"{event_type} event carries no subscription id"))

        try:
            full_subscription = await self.stripe.retrieve_subscription(subscription_id)
        except ProviderError as e:
            if event_type == SUBSCRIPTION_DELETED and e.not_found:
                # Already gone upstream: the event snapshot is all that is left
                logger.info(
                    "Subscription %s no longer exists in Stripe, syncing from event snapshot",
                    subscription_id,
                    extra={"subscription_id": subscription_id},
                )
                return await self.synchronizer.sync(subscription)
            return Err(e)

        return await self.synchronizer.sync(full_subscription)

    async def _handle_checkout_completed(
        self, session: dict[str, Any], event_type: str
    ) -> Result[Any]:
        subscription_id = get_subscription_reference(session)
        is_subscription_checkout = session.get("mode") == "subscription"
        if not is_subscription_checkout or not subscription_id or not get_customer_id(session):
            return Ok("Not a subscription checkout session or missing data.")

        return await self._retrieve_and_sync(subscription_id)

    async def _handle_invoice_paid(self, invoice: dict[str, Any], event_type: str) -> Result[Any]:
        subscription_id = get_subscription_reference(invoice)
        if not subscription_id:
            return Ok("Invoice paid but no subscription linked.")

        return await self._retrieve_and_sync(subscription_id)

    async def _handle_invoice_failed(self, invoice: dict[str, Any], event_type: str) -> Result[Any]:
        subscription_id = get_subscription_reference(invoice)
        if not subscription_id:
            return Ok("Invoice payment failed but no subscription linked.")

        result = await self.synchronizer.mark_past_due(subscription_id)
        if result.is_ok and not result.value:
            logger.warning(
                "No stored subscription %s to mark past_due",
                subscription_id,
                extra={"subscription_id": subscription_id},
            )
            return Ok(f"No stored subscription {subscription_id} to mark past_due.")
        return result
