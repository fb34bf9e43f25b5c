"""Input schemas for marketplace data operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from flip_platform.core.tiers import SubscriptionTier
from flip_platform.models.listing import Marketplace
from flip_platform.models.notification import NotificationPriority, NotificationType


class PriceRecordCreate(BaseModel):
    """A sold-price observation from a scraper."""

    product_id: str
    title: str
    price: float = Field(gt=0)
    category: str
    marketplace: Marketplace
    marketplace_url: str
    condition: str | None = None
    seller_location: str | None = None
    sold_at: datetime | None = None


class ListingCreate(BaseModel):
    """A live listing; tier, confidence, and profit percentage are derived."""

    marketplace_id: str
    marketplace: Marketplace
    title: str
    category: str
    current_price: float = Field(gt=0)
    market_value: float | None = None
    profit_potential: float = 0
    location: str | None = None
    region: str | None = None
    image_urls: list[str] | None = None
    ends_at: datetime | None = None
    is_auction: bool = False


class NotificationCreate(BaseModel):
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    listing_id: UUID | None = None
    tier_required: SubscriptionTier = SubscriptionTier.FREEMIUM
    priority: NotificationPriority = NotificationPriority.NORMAL
    urgency_score: int = Field(default=50, ge=0, le=100)
