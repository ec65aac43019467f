"""
Pytest configuration and shared fixtures for backend tests.
"""

import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are cached on first import, so test secrets go in first
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-supabase-jwt-secret-for-pytest-runs")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_pytest")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_pytest_secret")

import pytest
from typing import Any, AsyncGenerator, Callable, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from adapters.payments import StripeAdapter
from api.dependencies import get_stripe_adapter
from core.plans import EMAIL_COLLECTION_LIMIT, PROJECT_LIMIT, REMOVE_BRANDING_ON_PAGE
from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Base, FeatureFlag, Plan, Price, Profile, Subscription
from services.feature_access import feature_cache

settings = get_settings()
token_service = TokenService(
    secret_key=settings.supabase_jwt_secret,
    audience=settings.supabase_jwt_audience,
)

# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PRO_PRICE_ID = "price_pro_monthly"
TEST_CUSTOMER_ID = "cus_test_123"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def reset_feature_cache():
    """Start every test with an empty process feature cache."""
    feature_cache.clear()
    yield
    feature_cache.clear()


# ============================================================================
# Profiles and Catalog
# ============================================================================


@pytest.fixture
async def test_profile(db_session: AsyncSession) -> Profile:
    """Create a profile with a Stripe customer id."""
    profile = Profile(
        id=str(uuid4()),
        full_name="Test User",
        stripe_customer_id=TEST_CUSTOMER_ID,
    )
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest.fixture
async def new_profile(db_session: AsyncSession) -> Profile:
    """Create a profile that has never been through checkout."""
    profile = Profile(id=str(uuid4()), full_name="New User")
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest.fixture
async def pro_price(db_session: AsyncSession) -> Price:
    """Seed the Pro plan and its monthly price."""
    plan = Plan(id=str(uuid4()), name="Pro", description="Unlimited everything")
    db_session.add(plan)
    await db_session.flush()

    price = Price(
        id=str(uuid4()),
        plan_id=plan.id,
        stripe_price_id=PRO_PRICE_ID,
        currency="usd",
        unit_amount=900,
        interval="month",
        interval_count=1,
    )
    db_session.add(price)
    await db_session.commit()
    await db_session.refresh(price)
    return price


@pytest.fixture
async def feature_flags(db_session: AsyncSession) -> dict[str, FeatureFlag]:
    """
    Seed the three gated features.

    Free tier: 1 project, 10 emails per project, branding shown.
    Pro tier: unlimited projects and emails, branding removable.
    """
    flags = {
        PROJECT_LIMIT: FeatureFlag(
            name=PROJECT_LIMIT,
            price_configs=[
                {"price_id": None, "limit": "1"},
                {"price_id": PRO_PRICE_ID, "limit": "unlimited"},
            ],
        ),
        EMAIL_COLLECTION_LIMIT: FeatureFlag(
            name=EMAIL_COLLECTION_LIMIT,
            price_configs=[
                {"price_id": None, "limit": "10"},
                {"price_id": PRO_PRICE_ID, "limit": "unlimited"},
            ],
        ),
        REMOVE_BRANDING_ON_PAGE: FeatureFlag(
            name=REMOVE_BRANDING_ON_PAGE,
            price_configs=[
                {"price_id": None, "limit": False},
                {"price_id": PRO_PRICE_ID, "limit": True},
            ],
        ),
    }
    db_session.add_all(flags.values())
    await db_session.commit()
    return flags


@pytest.fixture
async def pro_subscription(
    db_session: AsyncSession, test_profile: Profile, pro_price: Price
) -> Subscription:
    """Store an active Pro subscription for test_profile."""
    subscription = Subscription(
        user_id=test_profile.id,
        plan_id=pro_price.plan_id,
        price_id=pro_price.id,
        stripe_subscription_id="sub_existing",
        stripe_customer_id=TEST_CUSTOMER_ID,
        status="active",
        cancel_at_period_end=False,
    )
    db_session.add(subscription)
    await db_session.commit()
    await db_session.refresh(subscription)
    return subscription


@pytest.fixture
def auth_headers(test_profile: Profile) -> dict:
    """Generate authentication headers for test_profile."""
    access_token = token_service.create_access_token(
        user_id=test_profile.id, email="test@example.com"
    )
    return {"Authorization": f"Bearer {access_token}"}


# ============================================================================
# Stripe Fixtures
# ============================================================================


@pytest.fixture
def stripe_adapter() -> StripeAdapter:
    """
    Stripe adapter with real signature verification and mocked network calls.

    Configure ``stripe_adapter.retrieve_subscription.return_value`` (or
    ``side_effect``) per test.
    """
    adapter = StripeAdapter(
        api_key="sk_test_pytest",
        webhook_secret=settings.stripe_webhook_secret,
        max_network_retries=0,
    )
    adapter.retrieve_subscription = AsyncMock()
    adapter.create_customer = AsyncMock(return_value="cus_new_456")
    adapter.create_checkout_session = AsyncMock(
        return_value={"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    )
    adapter.create_billing_portal_session = AsyncMock(
        return_value="https://billing.stripe.com/p/session/test_1"
    )
    return adapter


def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header (``t=...,v1=HMAC-SHA256``) for a payload."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def make_subscription() -> Callable[..., dict[str, Any]]:
    """Factory for Stripe subscription objects shaped like an expanded retrieve."""

    def _make(
        subscription_id: str = "sub_123",
        status: str = "active",
        price_id: str = PRO_PRICE_ID,
        customer: Any = TEST_CUSTOMER_ID,
        metadata: Optional[dict] = None,
        with_period: bool = True,
        period_on_item: bool = True,
        extra_items: int = 0,
        cancel_at_period_end: bool = False,
    ) -> dict[str, Any]:
        now = int(time.time())
        period = {"current_period_start": now, "current_period_end": now + 30 * 86400}

        item = {"id": "si_1", "object": "subscription_item", "price": {"id": price_id}}
        subscription = {
            "id": subscription_id,
            "object": "subscription",
            "customer": customer,
            "status": status,
            "cancel_at_period_end": cancel_at_period_end,
            "canceled_at": None,
            "ended_at": None,
            "trial_start": None,
            "trial_end": None,
            "metadata": metadata or {},
        }
        if with_period:
            if period_on_item:
                item.update(period)
            else:
                subscription.update(period)

        items = [item] + [
            {"id": f"si_extra_{i}", "price": {"id": f"price_extra_{i}"}}
            for i in range(extra_items)
        ]
        subscription["items"] = {"object": "list", "data": items}
        return subscription

    return _make


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory for Stripe event envelopes."""

    def _make(event_type: str, data_object: dict[str, Any], event_id: str = "evt_test_1"):
        return {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": int(time.time()),
            "data": {"object": data_object},
        }

    return _make


@pytest.fixture
def signed_webhook() -> Callable[[dict[str, Any]], tuple[bytes, dict[str, str]]]:
    """Serialize an event and sign it with the test webhook secret."""

    def _sign(
        event: dict[str, Any],
        secret: Optional[str] = None,
        timestamp: Optional[int] = None,
    ):
        body = json.dumps(event).encode("utf-8")
        signature = sign_payload(body, secret or settings.stripe_webhook_secret, timestamp)
        return body, {"Stripe-Signature": signature, "Content-Type": "application/json"}

    return _sign


# ============================================================================
# HTTP Client
# ============================================================================


@pytest.fixture
async def async_client(
    db_session: AsyncSession, stripe_adapter: StripeAdapter
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_adapter] = lambda: stripe_adapter

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
