"""Subscription tiers and their ordering."""

from dataclasses import dataclass
from enum import Enum


class SubscriptionTier(str, Enum):
    """User subscription tier levels."""

    FREEMIUM = "freemium"
    SILVER = "silver"
    GOLD = "gold"


# Access checks compare ranks, never tier names
TIER_RANK: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREEMIUM: 1,
    SubscriptionTier.SILVER: 2,
    SubscriptionTier.GOLD: 3,
}


@dataclass(frozen=True)
class TierFeatures:
    """Features for a specific tier."""

    name: str
    max_notifications: int  # -1 for unlimited
    features: tuple[str, ...]


TIER_FEATURES: dict[SubscriptionTier, TierFeatures] = {
    SubscriptionTier.FREEMIUM: TierFeatures(
        name="Freemium",
        max_notifications=5,
        features=("basic_deals",),
    ),
    SubscriptionTier.SILVER: TierFeatures(
        name="Silver",
        max_notifications=50,
        features=("basic_deals", "advanced_filters"),
    ),
    SubscriptionTier.GOLD: TierFeatures(
        name="Gold",
        max_notifications=-1,
        features=("basic_deals", "advanced_filters", "api_access", "analytics"),
    ),
}


def tier_rank(tier: SubscriptionTier | str) -> int:
    """Get the rank of a tier.

    Raises:
        ValueError: If the tier name is unknown
    """
    return TIER_RANK[SubscriptionTier(tier)]


def meets_tier(current: SubscriptionTier | str, required: SubscriptionTier | str) -> bool:
    """True iff ``current`` ranks at or above ``required``."""
    return tier_rank(current) >= tier_rank(required)


def get_tier_features(tier: SubscriptionTier | str) -> TierFeatures:
    """Get features for a tier, defaulting to FREEMIUM if invalid."""
    try:
        tier = SubscriptionTier(tier)
    except ValueError:
        tier = SubscriptionTier.FREEMIUM

    return TIER_FEATURES[tier]
