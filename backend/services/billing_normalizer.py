"""
Billing event normalizer.

Pulls stable identifiers and timestamps out of Stripe subscription
payloads whatever their shape: expanded or id-only customer references,
period bounds on the line item (current API versions) or on the
subscription itself (older versions).
"""

from typing import Any, Optional

from core.domain import BillingTimestamps, Err, InvalidSubscriptionError, Ok, Result

# Metadata key written at checkout time by the checkout session endpoint
USER_ID_METADATA_KEY = "supabase_user_id"


def _line_items(subscription: dict[str, Any]) -> list[dict[str, Any]]:
    items = subscription.get("items")
    if not isinstance(items, dict):
        return []
    data = items.get("data")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _epoch(value: Any) -> Optional[int]:
    # bool is an int subclass; it is never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def extract_timestamps(subscription: dict[str, Any]) -> BillingTimestamps:
    """
    Extract period, cancellation and trial timestamps.

    Period bounds are read from the first line item and fall back to the
    deprecated top-level fields. Missing values stay None; nothing is
    validated here.
    """
    items = _line_items(subscription)
    first_item = items[0] if items else {}

    period_start = _epoch(first_item.get("current_period_start"))
    if period_start is None:
        period_start = _epoch(subscription.get("current_period_start"))

    period_end = _epoch(first_item.get("current_period_end"))
    if period_end is None:
        period_end = _epoch(subscription.get("current_period_end"))

    return BillingTimestamps(
        period_start=period_start,
        period_end=period_end,
        canceled_at=_epoch(subscription.get("canceled_at")),
        ended_at=_epoch(subscription.get("ended_at")),
        trial_start=_epoch(subscription.get("trial_start")),
        trial_end=_epoch(subscription.get("trial_end")),
    )


def get_customer_id(obj: dict[str, Any]) -> Optional[str]:
    """Return the customer id from an id string or an expanded customer object."""
    customer = obj.get("customer")
    if isinstance(customer, str):
        return customer or None
    if isinstance(customer, dict):
        return customer.get("id")
    return None


def get_expanded_customer(obj: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Return the customer object when it was expanded, else None."""
    customer = obj.get("customer")
    return customer if isinstance(customer, dict) else None


def get_user_id_hint(obj: Optional[dict[str, Any]]) -> Optional[str]:
    """Read the internal user id from an object's metadata, if present."""
    if not obj:
        return None
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        return None
    user_id = metadata.get(USER_ID_METADATA_KEY)
    return user_id if isinstance(user_id, str) and user_id else None


def get_subscription_reference(obj: dict[str, Any]) -> Optional[str]:
    """Return the subscription id referenced by a checkout session or invoice."""
    subscription = obj.get("subscription")
    if isinstance(subscription, str):
        return subscription or None
    if isinstance(subscription, dict):
        return subscription.get("id")

    # Newer invoice payloads move the link under parent.subscription_details
    parent = obj.get("parent")
    if isinstance(parent, dict):
        details = parent.get("subscription_details")
        if isinstance(details, dict):
            return get_subscription_reference(details)
    return None


def get_single_price_id(subscription: dict[str, Any]) -> Result[str]:
    """
    Return the Stripe price id of the subscription's only line item.

    Subscriptions with zero or several line items are rejected rather than
    guessing which item is the plan.
    """
    items = _line_items(subscription)
    subscription_id = subscription.get("id")

    if not items:
        return Err(InvalidSubscriptionError(f"Subscription {subscription_id} has no line items"))
    if len(items) > 1:
        return Err(
            InvalidSubscriptionError(
                f"Subscription {subscription_id} has {len(items)} line items; "
                "exactly one billable price is supported"
            )
        )

    price = items[0].get("price")
    price_id = price.get("id") if isinstance(price, dict) else price
    if not isinstance(price_id, str) or not price_id:
        return Err(InvalidSubscriptionError(f"Subscription {subscription_id} has no price id"))

    return Ok(price_id)
