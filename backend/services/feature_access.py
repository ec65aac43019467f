"""
Feature access evaluator.

Combines a user's current subscription tier with the admin-managed
``feature_flags`` table to answer gating questions: may this user create
another project, may this project collect another email, may this
project hide the branding badge.

Resolved limit maps are cached per ``(user_id, stripe_price_id)`` in a
process-local TTL cache that the subscription synchronizer invalidates
after every successful write.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from cachetools import TTLCache
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain import FeatureDecision, evaluate_limit, select_config
from core.domain.features import (
    DecisionReason,
    LimitValue,
    parse_numeric_limit,
    parse_price_configs,
)
from core.plans import (
    ACCESS_STATUSES,
    EMAIL_COLLECTION_LIMIT,
    EMAIL_LIMIT_WARNING_THRESHOLD,
    FEATURE_FLAGS,
    PROJECT_LIMIT,
    REMOVE_BRANDING_ON_PAGE,
    UNLIMITED,
)
from infrastructure.config.settings import settings
from infrastructure.database.models import FeatureFlag, Lead, Project, Subscription
from services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)


class BrandingReason:
    """Reasons reported by the branding removal check."""

    ALLOWED = "allowed"
    NO_SUBSCRIPTION = "no_subscription"
    FEATURE_NOT_FOUND = "feature_not_found"
    NOT_ALLOWED_BY_PLAN = "not_allowed_by_plan"


class FeatureCache:
    """Process-local cache of resolved limit maps keyed by (user_id, stripe_price_id)."""

    def __init__(self, maxsize: int, ttl: float):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, user_id: str, stripe_price_id: Optional[str]) -> Optional[dict[str, Any]]:
        return self._cache.get((user_id, stripe_price_id))

    def set(self, user_id: str, stripe_price_id: Optional[str], limits: dict[str, Any]) -> None:
        self._cache[(user_id, stripe_price_id)] = limits

    def invalidate_user(self, user_id: str) -> None:
        """Drop every entry of a user, whatever price it was resolved for."""
        for key in [key for key in list(self._cache.keys()) if key[0] == user_id]:
            self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


# Shared by request handlers and the webhook synchronizer in this process
feature_cache = FeatureCache(
    maxsize=settings.feature_cache_max_entries,
    ttl=settings.feature_cache_ttl_seconds,
)


@dataclass(frozen=True)
class AccessContext:
    """Resolved user and subscription a request is evaluated against."""

    user_id: str
    subscription: Optional[Subscription] = None

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription is not None and self.subscription.status in ACCESS_STATUSES

    @property
    def stripe_price_id(self) -> Optional[str]:
        """Stripe price of the active subscription; None means the free tier."""
        if not self.has_active_subscription:
            return None
        return self.subscription.stripe_price_id


async def load_access_context(
    db: AsyncSession,
    user_id: str,
    timeout: Optional[float] = None,
) -> AccessContext:
    """
    Resolve a user's current subscription in one bounded call.

    Raises:
        asyncio.TimeoutError: If the lookup exceeds ``timeout`` seconds
    """
    if timeout is None:
        timeout = settings.subscription_lookup_timeout

    subscription = await asyncio.wait_for(
        SubscriptionStore(db).get_current_for_user(user_id),
        timeout=timeout,
    )
    return AccessContext(user_id=user_id, subscription=subscription)


@dataclass(frozen=True)
class EmailLimitStatus:
    """Email collection quota of one project."""

    count: int
    limit: Optional[LimitValue]
    remaining: Optional[int]
    can_collect: bool
    is_unlimited: bool
    show_warning: bool
    warning_message: Optional[str]


@dataclass(frozen=True)
class BrandingDecision:
    can_remove_branding: bool
    reason: str


def email_limit_warning(remaining: int, limit: LimitValue) -> Optional[str]:
    """Return the upgrade warning for a project close to its email cap."""
    if remaining <= 0:
        return (
            f"You've reached your email collection limit of {limit} emails for this "
            "project. Upgrade to Pro for unlimited email collection."
        )
    if remaining <= EMAIL_LIMIT_WARNING_THRESHOLD:
        noun = "email" if remaining == 1 else "emails"
        return (
            f"You have {remaining} {noun} left before reaching your limit of {limit}. "
            "Consider upgrading to Pro for unlimited collection."
        )
    return None


class FeatureAccessService:
    """
    Service for feature gating decisions.

    A feature without a ``feature_flags`` row, or without a config for
    the user's tier and no free-tier fallback, is denied and logged as a
    configuration gap.
    """

    def __init__(self, db: AsyncSession, cache: Optional[FeatureCache] = None):
        """
        Initialize feature access service.

        Args:
            db: Async database session
            cache: Limit cache (defaults to the process cache)
        """
        self.db = db
        self.cache = cache if cache is not None else feature_cache

    async def _load_flags(self) -> dict[str, FeatureFlag]:
        result = await self.db.execute(select(FeatureFlag))
        return {flag.name: flag for flag in result.scalars().all()}

    async def resolved_limits(self, context: AccessContext) -> dict[str, Optional[LimitValue]]:
        """
        Resolve the limit of every known feature for the context's tier.

        Returns:
            Mapping of feature name to limit; None where nothing is configured
        """
        price_id = context.stripe_price_id
        cached = self.cache.get(context.user_id, price_id)
        if cached is not None:
            return cached

        flags = await self._load_flags()
        limits: dict[str, Optional[LimitValue]] = {}

        for name in sorted(set(FEATURE_FLAGS) | set(flags)):
            flag = flags.get(name)
            if flag is None:
                logger.warning("Feature flag %s has no configuration row; denying", name)
                limits[name] = None
                continue

            config = select_config(parse_price_configs(flag.price_configs), price_id)
            if config is None:
                logger.warning(
                    "Feature flag %s has no config for price %s and no free tier; denying",
                    name,
                    price_id,
                )
                limits[name] = None
                continue

            if (
                isinstance(config.limit, str)
                and config.limit != UNLIMITED
                and parse_numeric_limit(config.limit) is None
            ):
                logger.warning("Feature flag %s has malformed limit %r", name, config.limit)

            limits[name] = config.limit

        self.cache.set(context.user_id, price_id, limits)
        return limits

    async def limit_for(self, feature: str, context: AccessContext) -> Optional[LimitValue]:
        """Limit value of one feature for the context's tier, None if unconfigured."""
        limits = await self.resolved_limits(context)
        return limits.get(feature)

    async def evaluate(
        self,
        feature: str,
        context: AccessContext,
        current_usage: int = 0,
    ) -> FeatureDecision:
        """Decide whether one more unit of ``feature`` is allowed at ``current_usage``."""
        decision = evaluate_limit(feature, await self.limit_for(feature, context), current_usage)
        if decision.reason == DecisionReason.INVALID_LIMIT:
            logger.warning("Denying %s for user %s: malformed limit", feature, context.user_id)
        return decision

    async def feature_map(self, context: AccessContext) -> dict[str, LimitValue]:
        """Features available to the context's tier; disabled and unconfigured ones omitted."""
        limits = await self.resolved_limits(context)
        return {
            name: limit
            for name, limit in limits.items()
            if limit is not None and limit is not False
        }

    async def count_projects(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Project).where(Project.user_id == user_id)
        )
        return result.scalar_one()

    async def count_leads(self, project_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Lead).where(Lead.project_id == project_id)
        )
        return result.scalar_one()

    async def check_project_limit(self, context: AccessContext) -> FeatureDecision:
        """Whether the user may create another project."""
        count = await self.count_projects(context.user_id)
        return await self.evaluate(PROJECT_LIMIT, context, count)

    async def check_email_collection_limit(
        self,
        project_id: str,
        context: AccessContext,
    ) -> EmailLimitStatus:
        """
        Email collection quota of a project, evaluated against its owner's tier.

        Args:
            project_id: Project ID
            context: Access context of the project owner

        Returns:
            EmailLimitStatus with the upgrade warning when five or fewer remain
        """
        count = await self.count_leads(project_id)
        decision = await self.evaluate(EMAIL_COLLECTION_LIMIT, context, count)

        warning = None
        if decision.remaining is not None and isinstance(decision.limit, str):
            warning = email_limit_warning(decision.remaining, decision.limit)

        return EmailLimitStatus(
            count=count,
            limit=decision.limit,
            remaining=decision.remaining,
            can_collect=decision.allowed,
            is_unlimited=decision.is_unlimited,
            show_warning=warning is not None,
            warning_message=warning,
        )

    async def can_remove_branding(self, context: AccessContext) -> BrandingDecision:
        """Whether the owner's plan lets a project hide the branding badge."""
        if not context.has_active_subscription:
            return BrandingDecision(False, BrandingReason.NO_SUBSCRIPTION)

        limit = await self.limit_for(REMOVE_BRANDING_ON_PAGE, context)
        if limit is None:
            flags = await self._load_flags()
            if REMOVE_BRANDING_ON_PAGE not in flags:
                return BrandingDecision(False, BrandingReason.FEATURE_NOT_FOUND)
            return BrandingDecision(False, BrandingReason.NOT_ALLOWED_BY_PLAN)

        decision = evaluate_limit(REMOVE_BRANDING_ON_PAGE, limit)
        if decision.allowed:
            return BrandingDecision(True, BrandingReason.ALLOWED)
        return BrandingDecision(False, BrandingReason.NOT_ALLOWED_BY_PLAN)
