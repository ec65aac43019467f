"""
Feature flag API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_access_context, get_feature_service
from api.schemas.features import FeatureDecisionResponse, FeatureMapResponse
from services.feature_access import AccessContext, FeatureAccessService

router = APIRouter(prefix="/features", tags=["features"])


@router.get("", response_model=FeatureMapResponse)
async def get_features(
    context: Annotated[AccessContext, Depends(get_access_context)],
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
):
    """Get the feature limits available to the caller's tier."""
    return FeatureMapResponse(
        stripe_price_id=context.stripe_price_id,
        features=await features.feature_map(context),
    )


@router.get("/{feature_name}", response_model=FeatureDecisionResponse)
async def evaluate_feature(
    feature_name: str,
    context: Annotated[AccessContext, Depends(get_access_context)],
    features: Annotated[FeatureAccessService, Depends(get_feature_service)],
    usage: int = Query(0, ge=0, description="Current usage count to evaluate against"),
):
    """Evaluate one feature for the caller at a given usage count."""
    limits = await features.resolved_limits(context)
    if feature_name not in limits:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown feature: {feature_name}",
        )

    decision = await features.evaluate(feature_name, context, usage)
    return FeatureDecisionResponse(**decision.to_dict())
