"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import partial

import httpx
import structlog
from fastapi import FastAPI

from flip_platform.api.router import api_router, site_router
from flip_platform.auth.gotrue import GoTrueCredentialStore
from flip_platform.auth.middleware import AccessMiddleware
from flip_platform.auth.profiles import SQLAlchemyProfileStore
from flip_platform.auth.providers import OAuthProviderRegistry
from flip_platform.config import get_settings
from flip_platform.core.exception_handlers import register_exception_handlers
from flip_platform.core.logging import setup_logging
from flip_platform.core.middleware import RequestLoggingMiddleware
from flip_platform.db.service import DatabaseService
from flip_platform.db.session import close_db, init_db

logger = structlog.get_logger("flip_platform.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    settings = get_settings()

    # Startup
    logger.info(
        "application_starting",
        version=settings.app_version,
        environment=settings.environment,
    )

    session_factory = await init_db()
    app.state.profile_store = SQLAlchemyProfileStore(session_factory)
    app.state.database = DatabaseService(session_factory, settings)
    logger.info("database_initialized")

    report = app.state.providers.validate()
    for warning in report.warnings:
        logger.warning("oauth_config_warning", message=warning)
    for error in report.errors:
        logger.error("oauth_config_error", message=error)

    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.credential_request_timeout))
    app.state.credential_factory = partial(GoTrueCredentialStore, settings, http_client)
    logger.info("credential_client_initialized", auth_url=settings.auth_base_url)

    logger.info("application_started")

    yield

    # Shutdown
    logger.info("application_stopping")

    await http_client.aclose()
    logger.info("credential_client_closed")

    await close_db()
    logger.info("database_closed")

    logger.info("application_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Raises:
        ConfigurationError: If required backend settings are missing
    """
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Flip Platform - marketplace arbitrage deals for Swedish marketplaces",
        openapi_url="/api/openapi.json" if settings.debug else None,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.providers = OAuthProviderRegistry.from_settings(settings)

    # Register exception handlers
    register_exception_handlers(app)

    # Added last runs first: request logging wraps the access checks
    app.add_middleware(AccessMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix="/api")
    app.include_router(site_router)

    return app


# Create the app instance
app = create_app()
