"""
API dependencies for authentication, Stripe access and feature gating.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments import StripeAdapter, create_stripe_adapter
from core.security import TokenPayload, TokenService
from infrastructure.config.settings import settings
from infrastructure.database import get_db
from infrastructure.database.models import Profile
from services.feature_access import AccessContext, FeatureAccessService, load_access_context

logger = logging.getLogger(__name__)

token_service = TokenService(
    secret_key=settings.supabase_jwt_secret,
    algorithm=settings.jwt_algorithm,
    audience=settings.supabase_jwt_audience,
)


async def get_token_payload(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> TokenPayload:
    """
    Dependency to verify the caller's Supabase access token.

    Reads the Authorization header first, falling back to the
    ``sb-access-token`` cookie.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        parts = authorization.split(" ", 1)
        token = parts[1] if len(parts) > 1 and parts[1] else None

    if not token:
        token = request.cookies.get("sb-access-token")

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = token_service.verify_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_user(
    payload: Annotated[TokenPayload, Depends(get_token_payload)],
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Dependency to get the profile of the authenticated caller."""
    result = await db.execute(select(Profile).where(Profile.id == payload.sub))
    profile = result.scalar_one_or_none()

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return profile


@lru_cache
def get_stripe_adapter() -> StripeAdapter:
    """Process-wide Stripe adapter configured from settings."""
    return create_stripe_adapter()


def get_feature_service(db: AsyncSession = Depends(get_db)) -> FeatureAccessService:
    return FeatureAccessService(db)


async def resolve_access_context(db: AsyncSession, user_id: str) -> AccessContext:
    """Load an access context, turning a lookup timeout into a 503."""
    try:
        return await load_access_context(db, user_id)
    except asyncio.TimeoutError:
        logger.error("Subscription lookup timed out for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Subscription lookup timed out",
        )


async def get_access_context(
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> AccessContext:
    """Access context of the authenticated caller."""
    return await resolve_access_context(db, current_user.id)
