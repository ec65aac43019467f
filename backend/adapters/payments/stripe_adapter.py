"""
Stripe billing adapter for subscription management.

Wraps the official ``stripe`` library: webhook signature verification on
the raw request body, subscription retrieval with the expansions the sync
needs, customer creation, checkout and billing portal sessions.
Everything handed back to services is a plain dict.
"""

import logging
from typing import Any

import stripe

from core.domain.errors import (
    ConfigurationError,
    ProviderError,
    SignatureVerificationError,
)
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


def to_plain(obj: Any) -> Any:
    """Recursively convert Stripe objects into plain dicts and lists."""
    if isinstance(obj, list):
        return [to_plain(item) for item in obj]
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    if isinstance(obj, dict):
        return {key: to_plain(value) for key, value in obj.items()}
    return obj


def _provider_error(error: stripe.StripeError, action: str) -> ProviderError:
    """Translate a Stripe exception into a ProviderError."""
    message = f"Stripe {action} failed: {error.user_message or str(error)}"

    if isinstance(error, stripe.InvalidRequestError):
        not_found = error.code == "resource_missing" or "No such" in str(error)
        return ProviderError(message, not_found=not_found)

    if isinstance(error, (stripe.APIConnectionError, stripe.RateLimitError)):
        return ProviderError(message, transient=True)

    transient = bool(error.http_status and error.http_status >= 500)
    return ProviderError(message, transient=transient)


class StripeAdapter:
    """
    Stripe API adapter for subscription billing.

    Network-level retries (connection errors, 409 lock conflicts, 5xx) are
    bounded by ``max_network_retries`` and use the library's exponential
    backoff; invalid requests are never retried.
    """

    # Expansions required so the sync sees line-item prices and customer metadata
    SUBSCRIPTION_EXPAND = ["items.data.price.product", "customer"]

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        max_network_retries: int | None = None,
        webhook_tolerance: int | None = None,
    ):
        """
        Initialize Stripe adapter.

        Args:
            api_key: Stripe secret key (defaults to settings)
            webhook_secret: Webhook signing secret (defaults to settings)
            max_network_retries: Retry budget for transient failures (defaults to settings)
            webhook_tolerance: Max signature age in seconds (defaults to settings)
        """
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.webhook_tolerance = (
            webhook_tolerance
            if webhook_tolerance is not None
            else settings.stripe_webhook_tolerance
        )
        stripe.max_network_retries = (
            max_network_retries
            if max_network_retries is not None
            else settings.stripe_max_network_retries
        )

        if not self.api_key:
            logger.warning("Stripe API key not configured. Set STRIPE_SECRET_KEY in settings.")

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("Stripe API key not configured. Set STRIPE_SECRET_KEY.")
        return self.api_key

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook delivery and return the event as a dict.

        The signature covers the exact bytes sent, so ``payload`` must be the
        raw, unparsed request body.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            Event dictionary (id, type, data.object, ...)

        Raises:
            ConfigurationError: If the webhook secret is not configured
            SignatureVerificationError: If the signature is missing, malformed or wrong
        """
        if not self.webhook_secret:
            raise ConfigurationError(
                "Webhook secret not configured. Set STRIPE_WEBHOOK_SECRET in settings."
            )
        if not signature:
            raise SignatureVerificationError("Missing Stripe-Signature header")
        if not payload:
            raise SignatureVerificationError("Empty webhook body")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
                tolerance=self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationError(f"Signature verification failed: {e}") from e
        except ValueError as e:
            # Signature matched but the body is not a JSON event
            raise SignatureVerificationError(f"Invalid webhook payload: {e}") from e

        return to_plain(event)

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        """
        Retrieve a subscription with line-item prices, products and customer expanded.

        Args:
            subscription_id: Stripe subscription ID

        Returns:
            Subscription dictionary

        Raises:
            ProviderError: If the API call fails (``not_found`` set for missing subscriptions)
        """
        logger.info("Retrieving Stripe subscription %s", subscription_id)
        try:
            subscription = await stripe.Subscription.retrieve_async(
                subscription_id,
                api_key=self._require_api_key(),
                expand=self.SUBSCRIPTION_EXPAND,
            )
        except stripe.StripeError as e:
            raise _provider_error(e, f"subscription retrieve ({subscription_id})") from e

        return to_plain(subscription)

    async def create_customer(self, email: str, name: str, user_id: str) -> str:
        """
        Create a Stripe customer tagged with the internal user id.

        Returns:
            Stripe customer ID
        """
        logger.info("Creating Stripe customer for user %s", user_id)
        try:
            customer = await stripe.Customer.create_async(
                api_key=self._require_api_key(),
                email=email,
                name=name,
                metadata={"supabase_user_id": user_id},
            )
        except stripe.StripeError as e:
            raise _provider_error(e, "customer create") from e

        return customer.id

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> dict[str, Any]:
        """
        Create a subscription-mode checkout session.

        The user id is written to the session and to the subscription
        metadata so webhook sync can resolve the user without a lookup.

        Returns:
            Dict with ``id`` and ``url`` of the session
        """
        logger.info("Creating checkout session for user %s, price %s", user_id, price_id)
        try:
            session = await stripe.checkout.Session.create_async(
                api_key=self._require_api_key(),
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"supabase_user_id": user_id, "stripe_price_id": price_id},
                subscription_data={"metadata": {"supabase_user_id": user_id}},
            )
        except stripe.StripeError as e:
            raise _provider_error(e, "checkout session create") from e

        return {"id": session.id, "url": session.url}

    async def create_billing_portal_session(self, customer_id: str, return_url: str) -> str:
        """
        Create a billing portal session.

        Returns:
            Portal URL
        """
        logger.info("Creating billing portal session for customer %s", customer_id)
        try:
            portal_session = await stripe.billing_portal.Session.create_async(
                api_key=self._require_api_key(),
                customer=customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as e:
            raise _provider_error(e, "billing portal session create") from e

        return portal_session.url


def create_stripe_adapter(
    api_key: str | None = None,
    webhook_secret: str | None = None,
) -> StripeAdapter:
    """
    Create a Stripe adapter instance.

    Args:
        api_key: Stripe secret key (defaults to settings)
        webhook_secret: Webhook signing secret (defaults to settings)

    Returns:
        StripeAdapter instance
    """
    return StripeAdapter(api_key=api_key, webhook_secret=webhook_secret)
