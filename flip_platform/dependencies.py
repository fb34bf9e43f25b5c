"""Shared dependencies for dependency injection.

Process-lifetime collaborators live on ``app.state`` (set up in the
lifespan handler); tests replace them there or via ``dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from flip_platform.auth.credentials import CookieStorage, CredentialStore
from flip_platform.auth.profiles import ProfileStore
from flip_platform.auth.providers import OAuthProviderRegistry
from flip_platform.auth.schemas import UserProfile
from flip_platform.auth.service import AuthService
from flip_platform.config import Settings, get_settings
from flip_platform.core.exceptions import AuthenticationError
from flip_platform.db.service import DatabaseService

# =============================================================================
# Settings Dependency
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Store Dependencies
# =============================================================================


def get_cookie_storage(request: Request, settings: SettingsDep) -> CookieStorage:
    """Session storage over this request's cookies."""
    return CookieStorage(request.cookies, secure=settings.is_production)


CookieStorageDep = Annotated[CookieStorage, Depends(get_cookie_storage)]


def get_credential_store(request: Request, storage: CookieStorageDep) -> CredentialStore:
    """Credential store bound to this request's cookies."""
    return request.app.state.credential_factory(storage)


CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]


def get_profile_store(request: Request) -> ProfileStore:
    return request.app.state.profile_store


ProfileStoreDep = Annotated[ProfileStore, Depends(get_profile_store)]


def get_provider_registry(request: Request) -> OAuthProviderRegistry:
    return request.app.state.providers


ProviderRegistryDep = Annotated[OAuthProviderRegistry, Depends(get_provider_registry)]


def get_database_service(request: Request) -> DatabaseService:
    return request.app.state.database


DatabaseServiceDep = Annotated[DatabaseService, Depends(get_database_service)]


def get_auth_service(
    credentials: CredentialStoreDep,
    profiles: ProfileStoreDep,
    providers: ProviderRegistryDep,
    settings: SettingsDep,
) -> AuthService:
    return AuthService(credentials, profiles, providers, settings)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# =============================================================================
# Authentication Dependencies
# =============================================================================


def get_current_profile(request: Request) -> UserProfile:
    """Profile resolved by the access middleware for this request."""
    profile = getattr(request.state, "profile", None)
    if profile is None:
        raise AuthenticationError("Not authenticated")
    return profile


CurrentProfile = Annotated[UserProfile, Depends(get_current_profile)]
