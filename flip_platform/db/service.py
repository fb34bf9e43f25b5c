"""Data service for marketplace records.

Every operation runs through ``execute_with_retry``; only transient
database failures are retried.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar
from uuid import UUID

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flip_platform.config import Settings
from flip_platform.core.exceptions import (
    DuplicateProfileError,
    ExternalServiceError,
    InsufficientTierError,
    NotFoundError,
    TransientDataError,
)
from flip_platform.core.retry import execute_with_retry
from flip_platform.core.tiers import SubscriptionTier, meets_tier
from flip_platform.models import (
    Listing,
    ListingStatus,
    Notification,
    ProductPrice,
    Transaction,
    TransactionType,
    User,
)
from flip_platform.schemas.data import ListingCreate, NotificationCreate, PriceRecordCreate

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Profit thresholds (SEK) for listing notification tiers
GOLD_PROFIT_THRESHOLD = 500
SILVER_PROFIT_THRESHOLD = 200


def notification_tier_for_profit(profit_potential: float) -> SubscriptionTier:
    """Tier required to see a deal with the given profit potential."""
    if profit_potential >= GOLD_PROFIT_THRESHOLD:
        return SubscriptionTier.GOLD
    if profit_potential >= SILVER_PROFIT_THRESHOLD:
        return SubscriptionTier.SILVER
    return SubscriptionTier.FREEMIUM


class DatabaseService:
    """Marketplace data access over an async session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings

    async def _execute(
        self,
        name: str,
        operation: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        async def attempt() -> T:
            try:
                async with self.session_factory() as session:
                    return await operation(session)
            except OperationalError as e:
                raise TransientDataError(f"{name}: {e.orig or e}") from e

        try:
            return await execute_with_retry(
                attempt,
                max_attempts=self.settings.db_retry_attempts,
                base_delay=self.settings.db_retry_base_delay,
                max_delay=self.settings.db_retry_max_delay,
                retry_on=(TransientDataError,),
            )
        except SQLAlchemyError as e:
            logger.error("database_operation_failed", operation=name, error=str(e))
            raise ExternalServiceError("Database", f"{name} failed") from e

    # =========================================================================
    # Health / Price Database
    # =========================================================================

    async def is_healthy(self) -> bool:
        """True if a trivial query succeeds. Not retried."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("database_unhealthy", error=str(e))
            return False
        return True

    async def get_price_record_count(self) -> int:
        async def operation(session: AsyncSession) -> int:
            result = await session.execute(select(func.count()).select_from(ProductPrice))
            return int(result.scalar_one())

        return await self._execute("get_price_record_count", operation)

    async def is_price_database_complete(self) -> bool:
        count = await self.get_price_record_count()
        required = self.settings.min_price_records
        complete = count >= required
        logger.info(
            "price_database_status",
            records=count,
            required=required,
            complete=complete,
        )
        return complete

    async def create_price_record(self, record: PriceRecordCreate) -> ProductPrice:
        async def operation(session: AsyncSession) -> ProductPrice:
            price = ProductPrice(**record.model_dump(mode="json", exclude={"sold_at"}))
            price.sold_at = record.sold_at
            session.add(price)
            await session.commit()
            await session.refresh(price)
            return price

        return await self._execute("create_price_record", operation)

    # =========================================================================
    # Users
    # =========================================================================

    async def create_user(
        self,
        auth_id: str,
        email: str,
        subscription_tier: SubscriptionTier = SubscriptionTier.FREEMIUM,
        location_city: str | None = None,
        location_region: str | None = None,
    ) -> User:
        async def operation(session: AsyncSession) -> User:
            user = User(
                auth_id=auth_id,
                email=email,
                subscription_tier=SubscriptionTier(subscription_tier).value,
                location_city=location_city,
                location_region=location_region,
                is_active=True,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateProfileError(auth_id) from e
            await session.refresh(user)
            return user

        return await self._execute("create_user", operation)

    async def get_user_by_auth_id(self, auth_id: str) -> User | None:
        async def operation(session: AsyncSession) -> User | None:
            result = await session.execute(select(User).where(User.auth_id == auth_id))
            return result.scalar_one_or_none()

        return await self._execute("get_user_by_auth_id", operation)

    async def get_user_by_email(self, email: str) -> User | None:
        async def operation(session: AsyncSession) -> User | None:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalars().first()

        return await self._execute("get_user_by_email", operation)

    # =========================================================================
    # Listings
    # =========================================================================

    async def create_listing(self, data: ListingCreate) -> Listing:
        """Store a listing with its derived tier, confidence, and margin."""
        profit_percentage = None
        if data.market_value:
            profit_percentage = (
                (data.market_value - data.current_price) / data.current_price * 100
            )

        async def operation(session: AsyncSession) -> Listing:
            listing = Listing(
                marketplace_id=data.marketplace_id,
                marketplace=data.marketplace.value,
                title=data.title,
                category=data.category,
                current_price=data.current_price,
                market_value=data.market_value or None,
                profit_potential=data.profit_potential,
                profit_percentage=profit_percentage,
                confidence_score=0.8 if data.market_value else 0.5,
                location=data.location,
                region=data.region,
                image_urls=data.image_urls,
                ends_at=data.ends_at,
                is_auction=data.is_auction,
                status=ListingStatus.ACTIVE.value,
                notification_tier_required=notification_tier_for_profit(
                    data.profit_potential
                ).value,
            )
            session.add(listing)
            await session.commit()
            await session.refresh(listing)
            return listing

        return await self._execute("create_listing", operation)

    async def get_active_listings(self, limit: int = 100) -> list[Listing]:
        """Active listings, most profitable first."""

        async def operation(session: AsyncSession) -> list[Listing]:
            result = await session.execute(
                select(Listing)
                .where(Listing.status == ListingStatus.ACTIVE.value)
                .order_by(Listing.profit_potential.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

        return await self._execute("get_active_listings", operation)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def create_notification(self, data: NotificationCreate) -> Notification:
        async def operation(session: AsyncSession) -> Notification:
            notification = Notification(
                user_id=data.user_id,
                listing_id=data.listing_id,
                type=data.type.value,
                title=data.title,
                message=data.message,
                tier_required=data.tier_required.value,
                priority=data.priority.value,
                urgency_score=data.urgency_score,
                is_read=False,
                is_unlocked=False,
            )
            session.add(notification)
            await session.commit()
            await session.refresh(notification)
            return notification

        return await self._execute("create_notification", operation)

    async def get_user_notifications(self, user_id: UUID, limit: int = 50) -> list[Notification]:
        async def operation(session: AsyncSession) -> list[Notification]:
            result = await session.execute(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

        return await self._execute("get_user_notifications", operation)

    async def unlock_notification(
        self,
        notification_id: UUID,
        user_id: UUID,
        unlock_cost: float,
    ) -> Notification:
        """Record a (mock) payment and unlock the notification.

        Raises:
            NotFoundError: If the notification or user does not exist
            InsufficientTierError: If the user's tier ranks below the
                notification's required tier
        """

        async def operation(session: AsyncSession) -> Notification:
            notification = await session.scalar(
                select(Notification).where(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                )
            )
            if notification is None:
                raise NotFoundError("Notification", str(notification_id))

            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", str(user_id))

            if not meets_tier(user.subscription_tier, notification.tier_required):
                raise InsufficientTierError(notification.tier_required)

            session.add(
                Transaction(
                    user_id=user_id,
                    notification_id=notification_id,
                    type=TransactionType.UNLOCK.value,
                    amount=unlock_cost,
                    currency="SEK",
                    description="Notification unlock",
                    status="completed",
                    payment_method="mock",
                )
            )
            notification.is_unlocked = True
            notification.unlocked_at = datetime.now(timezone.utc)
            notification.unlock_cost = unlock_cost
            await session.commit()
            await session.refresh(notification)
            return notification

        notification = await self._execute("unlock_notification", operation)
        logger.info(
            "notification_unlocked",
            notification_id=str(notification_id),
            user_id=str(user_id),
            unlock_cost=unlock_cost,
        )
        return notification
