"""Dashboard shell data for signed-in users."""

from fastapi import APIRouter
from pydantic import BaseModel

from flip_platform.auth.schemas import AuthUser
from flip_platform.core.tiers import get_tier_features
from flip_platform.dependencies import CurrentProfile

router = APIRouter()


class TierSummary(BaseModel):
    name: str
    max_notifications: int
    features: list[str]


class DashboardResponse(BaseModel):
    user: AuthUser
    tier: TierSummary


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(profile: CurrentProfile) -> DashboardResponse:
    """Profile and tier summary. Access is enforced by ``AccessMiddleware``."""
    features = get_tier_features(profile.subscription_tier)
    return DashboardResponse(
        user=AuthUser.from_profile(profile),
        tier=TierSummary(
            name=features.name,
            max_notifications=features.max_notifications,
            features=list(features.features),
        ),
    )
