"""Live marketplace listings."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, Float, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from flip_platform.core.tiers import SubscriptionTier
from flip_platform.db.base import Base, TimestampMixin


class Marketplace(str, Enum):
    """Supported marketplaces."""

    TRADERA = "tradera"
    BLOCKET = "blocket"
    FACEBOOK = "facebook"
    SELLPY = "sellpy"
    PLICK = "plick"


class ListingStatus(str, Enum):
    """Listing lifecycle."""

    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"
    REMOVED = "removed"


class Listing(Base, TimestampMixin):
    """A listing found on a marketplace, with its estimated profit."""

    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    marketplace_id: Mapped[str] = mapped_column(String(255), nullable=False)
    marketplace: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    current_price: Mapped[float] = mapped_column(Float, nullable=False)
    market_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_potential: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    profit_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.5, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_urls: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_auction: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ListingStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )
    notification_tier_required: Mapped[str] = mapped_column(
        String(20),
        default=SubscriptionTier.FREEMIUM.value,
        nullable=False,
    )
