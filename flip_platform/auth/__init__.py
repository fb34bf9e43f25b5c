"""Authentication: credential store client, profiles, and session handling."""

from flip_platform.auth.credentials import (
    AuthChangeEvent,
    CookieStorage,
    CredentialSession,
    CredentialStore,
    CredentialUser,
    MemoryStorage,
    SessionStorage,
)
from flip_platform.auth.gotrue import GoTrueCredentialStore
from flip_platform.auth.middleware import AccessMiddleware
from flip_platform.auth.profiles import ProfileStore, SQLAlchemyProfileStore, get_or_create_profile
from flip_platform.auth.providers import OAuthProvider, OAuthProviderRegistry
from flip_platform.auth.result import AuthResult
from flip_platform.auth.schemas import AuthSession, AuthUser, UserProfile
from flip_platform.auth.service import AuthService
from flip_platform.auth.session_context import AuthState, SessionContext, SessionStatus

__all__ = [
    "AccessMiddleware",
    "AuthChangeEvent",
    "AuthResult",
    "AuthService",
    "AuthSession",
    "AuthState",
    "AuthUser",
    "CookieStorage",
    "CredentialSession",
    "CredentialStore",
    "CredentialUser",
    "GoTrueCredentialStore",
    "MemoryStorage",
    "OAuthProvider",
    "OAuthProviderRegistry",
    "ProfileStore",
    "SQLAlchemyProfileStore",
    "SessionContext",
    "SessionStatus",
    "SessionStorage",
    "UserProfile",
    "get_or_create_profile",
]
