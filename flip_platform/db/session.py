"""Database session management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from flip_platform.config import get_settings

# Process-lifetime engine
_engine: AsyncEngine | None = None


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used by stores and services."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> async_sessionmaker[AsyncSession]:
    """Initialize database connection pool."""
    global _engine

    settings = get_settings()

    engine_kwargs: dict = {"echo": settings.debug}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )

    _engine = create_async_engine(settings.database_url, **engine_kwargs)
    return create_session_factory(_engine)


async def close_db() -> None:
    """Close database connection pool."""
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None

