"""Deal notifications and their unlock transactions."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from flip_platform.core.tiers import SubscriptionTier
from flip_platform.db.base import Base, TimestampMixin


class NotificationType(str, Enum):
    """Notification categories."""

    DEAL_ALERT = "deal_alert"
    PRICE_DROP = "price_drop"
    AUCTION_ENDING = "auction_ending"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    """Notification priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base, TimestampMixin):
    """A deal notification addressed to one user."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    listing_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("listings.id", ondelete="SET NULL"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(String(2000), nullable=False)
    tier_required: Mapped[str] = mapped_column(
        String(20),
        default=SubscriptionTier.FREEMIUM.value,
        nullable=False,
    )
    priority: Mapped[str] = mapped_column(
        String(10),
        default=NotificationPriority.NORMAL.value,
        nullable=False,
    )
    urgency_score: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_unlocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unlock_cost: Mapped[float | None] = mapped_column(Float, nullable=True)


class TransactionType(str, Enum):
    """Transaction categories."""

    UNLOCK = "unlock"
    SUBSCRIPTION = "subscription"
    REFUND = "refund"


class Transaction(Base, TimestampMixin):
    """A payment record. Payments are mocked."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notification_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="SEK", nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
