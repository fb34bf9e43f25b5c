"""Profile store: application-level user rows keyed by auth identity."""

from typing import Any, Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flip_platform.auth.schemas import ProfileCreate, UserProfile
from flip_platform.core.exceptions import DuplicateProfileError, ProfileStoreError
from flip_platform.models.user import User

logger = structlog.get_logger(__name__)


class ProfileStore(Protocol):
    """Persistence for ``UserProfile`` records.

    Methods raise ``ProfileStoreError`` on failure and
    ``DuplicateProfileError`` when a row for the auth identity exists.
    """

    async def get_by_auth_id(self, auth_id: str) -> UserProfile | None: ...

    async def create(self, profile: ProfileCreate) -> UserProfile: ...

    async def update(self, auth_id: str, values: dict[str, Any]) -> UserProfile | None: ...

    async def deactivate(self, auth_id: str) -> bool: ...


class SQLAlchemyProfileStore:
    """ProfileStore over the ``users`` table, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_by_auth_id(self, auth_id: str) -> UserProfile | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.auth_id == auth_id))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("profile_fetch_failed", auth_id=auth_id, error=str(e))
            raise ProfileStoreError("Failed to fetch profile") from e

        return UserProfile.model_validate(user) if user else None

    async def create(self, profile: ProfileCreate) -> UserProfile:
        user = User(**profile.model_dump(mode="json"))
        try:
            async with self.session_factory() as session:
                session.add(user)
                await session.commit()
                await session.refresh(user)
        except IntegrityError as e:
            raise DuplicateProfileError(profile.auth_id) from e
        except SQLAlchemyError as e:
            logger.error("profile_create_failed", auth_id=profile.auth_id, error=str(e))
            raise ProfileStoreError("Failed to create profile") from e

        logger.info("profile_created", auth_id=profile.auth_id, user_id=str(user.id))
        return UserProfile.model_validate(user)

    async def update(self, auth_id: str, values: dict[str, Any]) -> UserProfile | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.auth_id == auth_id))
                user = result.scalar_one_or_none()
                if user is None:
                    return None
                for key, value in values.items():
                    setattr(user, key, value)
                await session.commit()
                await session.refresh(user)
        except SQLAlchemyError as e:
            logger.error("profile_update_failed", auth_id=auth_id, error=str(e))
            raise ProfileStoreError("Failed to update profile") from e

        return UserProfile.model_validate(user)

    async def deactivate(self, auth_id: str) -> bool:
        """Clear the active flag. Returns False if no row matched."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(User).where(User.auth_id == auth_id).values(is_active=False)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("profile_deactivate_failed", auth_id=auth_id, error=str(e))
            raise ProfileStoreError("Failed to deactivate profile") from e

        return result.rowcount > 0


async def get_or_create_profile(
    store: ProfileStore,
    auth_id: str,
    email: str,
    **defaults: Any,
) -> UserProfile:
    """Fetch the profile for ``auth_id``, creating it if absent.

    Safe under concurrent first logins: losing the insert race re-fetches
    the winner's row.
    """
    profile = await store.get_by_auth_id(auth_id)
    if profile is not None:
        return profile

    try:
        return await store.create(ProfileCreate(auth_id=auth_id, email=email, **defaults))
    except DuplicateProfileError:
        logger.info("profile_create_race", auth_id=auth_id)
        profile = await store.get_by_auth_id(auth_id)
        if profile is None:
            raise ProfileStoreError("Profile vanished after duplicate insert") from None
        return profile
