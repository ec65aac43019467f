"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from core.plans import FEATURE_FLAGS
from infrastructure.config import get_settings
from infrastructure.database import get_db
from infrastructure.database.models import FeatureFlag

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


async def _ping_database(db: AsyncSession) -> str:
    try:
        result = await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        result.scalar()
        return "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        return "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", str(e))
        return "error: database check failed"


async def _ping_rate_limit_storage() -> str:
    if not settings.redis_url:
        return "memory"
    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.redis_url)
        await asyncio.wait_for(r.ping(), timeout=2.0)
        await r.aclose()
        return "ok"
    except Exception as e:
        logger.warning("Rate limit storage unavailable: %s", str(e))
        return "degraded"


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity and Stripe configuration."""
    db_status = await _ping_database(db)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": db_status,
        "stripe_configured": bool(settings.stripe_secret_key and settings.stripe_webhook_secret),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness probe.

    The database is required. Gated features without a feature_flags row
    are denied to everyone, so they are listed to make a missing seed
    visible before users hit it.
    """
    db_status = await _ping_database(db)
    db_ok = db_status == "connected"

    missing_flags: list[str] = []
    if db_ok:
        result = await db.execute(select(FeatureFlag.name))
        configured = set(result.scalars().all())
        missing_flags = [name for name in FEATURE_FLAGS if name not in configured]

    return {
        "ready": db_ok,
        "database": "ok" if db_ok else "unavailable",
        "rate_limit_storage": await _ping_rate_limit_storage(),
        "missing_feature_flags": missing_flags,
    }


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
