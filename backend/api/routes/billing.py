"""
Billing API routes: Stripe webhook, checkout and billing portal.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments import StripeAdapter
from api.dependencies import get_current_user, get_stripe_adapter, get_token_payload
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    CustomerPortalResponse,
    WebhookResponse,
)
from core.domain import ConfigurationError, ProviderError, SignatureVerificationError
from core.security import TokenPayload
from infrastructure.config.settings import settings
from infrastructure.database import get_db
from infrastructure.database.models import Profile
from services.subscription_store import SubscriptionStore
from services.webhook_dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])


@router.post("/webhook", response_model=WebhookResponse)
@limiter.limit(get_rate_limit("stripe_webhook"))
async def handle_webhook(
    request: Request,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Handle Stripe webhook events.

    Verified events are always acknowledged with 200; ``processedOk``
    reports whether the subscription sync succeeded.
    - customer.subscription.created/updated/deleted/resumed: resync subscription
    - checkout.session.completed: sync the new subscription
    - invoice.payment_succeeded: resync the linked subscription
    - invoice.payment_failed: mark the linked subscription past_due
    """
    if not stripe_adapter.webhook_secret:
        logger.error("Webhook rejected: STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook verification not configured",
        )

    # Raw body: the signature covers the exact bytes
    body = await request.body()

    dispatcher = WebhookDispatcher(db, stripe_adapter)
    try:
        outcome = await dispatcher.handle(body, stripe_signature)
    except SignatureVerificationError as e:
        logger.error("Webhook signature verification failed: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e.message}",
        )
    except ConfigurationError as e:
        logger.error("Webhook rejected: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook verification not configured",
        )

    return outcome.to_response()


@router.post("/checkout-session", response_model=CheckoutResponse)
@limiter.limit(get_rate_limit("checkout"))
async def create_checkout_session(
    request: Request,
    checkout_request: CheckoutRequest,
    current_user: Annotated[Profile, Depends(get_current_user)],
    token: Annotated[TokenPayload, Depends(get_token_payload)],
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Create a Stripe checkout session for a subscription.

    Creates the Stripe customer on first checkout and stores its id on
    the profile.
    """
    price_id = checkout_request.price_id
    if not price_id or not price_id.startswith("price_"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or missing priceId",
        )

    existing = await SubscriptionStore(db).get_current_for_user(current_user.id)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have an active subscription",
        )

    site_url = settings.site_url.rstrip("/")
    try:
        customer_id = current_user.stripe_customer_id
        if not customer_id:
            customer_id = await stripe_adapter.create_customer(
                email=token.email or "",
                name=current_user.full_name or token.email or "",
                user_id=current_user.id,
            )
            current_user.stripe_customer_id = customer_id
            await db.commit()

        session = await stripe_adapter.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            user_id=current_user.id,
            success_url=f"{site_url}/dashboard/pro",
            cancel_url=f"{site_url}/pricing",
        )
    except (ProviderError, ConfigurationError) as e:
        logger.error("Checkout session failed for user %s: %s", current_user.id, e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        )

    return CheckoutResponse(session_id=session["id"], session_url=session.get("url"))


@router.post("/customer-portal", response_model=CustomerPortalResponse)
async def create_customer_portal(
    current_user: Annotated[Profile, Depends(get_current_user)],
    redirect: str = Query("/dashboard", description="Path to return to after the portal"),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
):
    """Create a Stripe billing portal session for the caller."""
    if not redirect.startswith("/") or redirect.startswith("//"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="redirect must be a site-relative path",
        )

    if not current_user.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stripe customer ID not found",
        )

    return_url = f"{settings.site_url.rstrip('/')}{redirect}"
    try:
        portal_url = await stripe_adapter.create_billing_portal_session(
            customer_id=current_user.stripe_customer_id,
            return_url=return_url,
        )
    except (ProviderError, ConfigurationError) as e:
        logger.error("Portal session failed for user %s: %s", current_user.id, e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create customer portal session",
        )

    return CustomerPortalResponse(portal_url=portal_url)
