"""
Subscription status API route.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_access_context
from api.schemas.billing import SubscriptionInfo, SubscriptionStatusResponse
from services.feature_access import AccessContext

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    context: Annotated[AccessContext, Depends(get_access_context)],
):
    """Get the caller's current active or trialing subscription."""
    subscription = context.subscription
    if subscription is None:
        return SubscriptionStatusResponse()

    return SubscriptionStatusResponse(
        subscription=SubscriptionInfo.model_validate(subscription),
        is_active=context.has_active_subscription,
        has_scheduled_cancellation=(
            context.has_active_subscription and bool(subscription.cancel_at_period_end)
        ),
    )
