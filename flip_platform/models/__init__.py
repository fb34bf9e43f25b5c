"""Database models."""

from flip_platform.models.listing import Listing, ListingStatus, Marketplace
from flip_platform.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
    Transaction,
    TransactionType,
)
from flip_platform.models.price import ProductPrice
from flip_platform.models.user import User

__all__ = [
    "User",
    "ProductPrice",
    "Listing",
    "ListingStatus",
    "Marketplace",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Transaction",
    "TransactionType",
]
