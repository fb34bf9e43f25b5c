"""Pytest fixtures and configuration for testing."""

import os

# The application module builds its app at import time and requires
# backend settings, so the environment must be in place first.
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = ""
os.environ["SUPABASE_GOOGLE_ENABLED"] = "true"
os.environ["SITE_URL"] = "http://localhost:3000"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

# Import all models to register them with SQLAlchemy metadata
import flip_platform.models  # noqa: E402, F401
from flip_platform.auth.profiles import SQLAlchemyProfileStore  # noqa: E402
from flip_platform.auth.providers import OAuthProviderRegistry  # noqa: E402
from flip_platform.auth.schemas import ProfileCreate, UserProfile  # noqa: E402
from flip_platform.auth.service import AuthService  # noqa: E402
from flip_platform.config import Settings  # noqa: E402
from flip_platform.db.base import Base  # noqa: E402
from flip_platform.db.service import DatabaseService  # noqa: E402
from flip_platform.db.session import create_session_factory  # noqa: E402
from flip_platform.main import create_app  # noqa: E402
from tests.fakes import FakeAuthBackend, FakeCredentialStore  # noqa: E402

# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        environment="test",
        supabase_url="https://project.supabase.test",
        supabase_anon_key="test-anon-key",
        supabase_jwt_secret="",
        supabase_google_enabled=True,
        site_url="http://localhost:3000",
        database_url="sqlite+aiosqlite:///:memory:",
        db_retry_attempts=3,
        db_retry_base_delay=0,
        db_retry_max_delay=0,
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine using SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_db_engine)


@pytest.fixture
def profile_store(session_factory: async_sessionmaker[AsyncSession]) -> SQLAlchemyProfileStore:
    return SQLAlchemyProfileStore(session_factory)


@pytest.fixture
def database(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
) -> DatabaseService:
    return DatabaseService(session_factory, test_settings)


@pytest_asyncio.fixture
async def make_profile(profile_store: SQLAlchemyProfileStore):
    """Factory that inserts a profile row."""

    async def _make(auth_id: str, email: str, **values) -> UserProfile:
        return await profile_store.create(ProfileCreate(auth_id=auth_id, email=email, **values))

    return _make


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def auth_backend() -> FakeAuthBackend:
    """Shared in-memory identity backend."""
    return FakeAuthBackend()


@pytest.fixture
def credentials(auth_backend: FakeAuthBackend) -> FakeCredentialStore:
    return auth_backend.store()


@pytest.fixture
def providers(test_settings: Settings) -> OAuthProviderRegistry:
    return OAuthProviderRegistry.from_settings(test_settings)


@pytest.fixture
def auth_service(
    credentials: FakeCredentialStore,
    profile_store: SQLAlchemyProfileStore,
    providers: OAuthProviderRegistry,
    test_settings: Settings,
) -> AuthService:
    return AuthService(credentials, profile_store, providers, test_settings)


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def test_app(
    profile_store: SQLAlchemyProfileStore,
    database: DatabaseService,
    auth_backend: FakeAuthBackend,
) -> FastAPI:
    """Application wired to the test database and the fake backend.

    ASGITransport does not run the lifespan handler, so its collaborators
    are set on ``app.state`` here.
    """
    app = create_app()
    app.state.profile_store = profile_store
    app.state.database = database
    app.state.credential_factory = auth_backend.store
    return app


@pytest_asyncio.fixture
async def async_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client
