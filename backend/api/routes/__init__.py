"""API Routes."""

from fastapi import APIRouter

from .billing import router as billing_router
from .features import router as features_router
from .health import router as health_router
from .leads import router as leads_router
from .projects import router as projects_router
from .subscription import router as subscription_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(billing_router)
api_router.include_router(subscription_router)
api_router.include_router(features_router)
api_router.include_router(projects_router)
api_router.include_router(leads_router)
