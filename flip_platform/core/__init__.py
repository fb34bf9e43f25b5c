"""Core module with exceptions, tiers, and retry helpers."""

from flip_platform.core.exception_handlers import register_exception_handlers
from flip_platform.core.exceptions import (
    AccountInactiveError,
    AppException,
    AuthenticationError,
    AuthOperationError,
    AuthorizationError,
    ConfigurationError,
    CredentialServiceUnavailableError,
    CredentialStoreError,
    DuplicateProfileError,
    ExternalServiceError,
    InsufficientTierError,
    InvalidCredentialsError,
    NotFoundError,
    ProfileStoreError,
    SessionMissingError,
    TokenExpiredError,
    TokenInvalidError,
    TransientDataError,
)
from flip_platform.core.retry import execute_with_retry
from flip_platform.core.tiers import (
    TIER_FEATURES,
    TIER_RANK,
    SubscriptionTier,
    TierFeatures,
    get_tier_features,
    meets_tier,
    tier_rank,
)

__all__ = [
    # Base Exception
    "AppException",
    "ConfigurationError",
    # Credential Errors
    "AuthenticationError",
    "AuthOperationError",
    "CredentialStoreError",
    "CredentialServiceUnavailableError",
    "InvalidCredentialsError",
    "SessionMissingError",
    "TokenExpiredError",
    "TokenInvalidError",
    # Authorization Errors
    "AuthorizationError",
    "InsufficientTierError",
    "AccountInactiveError",
    # Profile / Data Errors
    "ProfileStoreError",
    "DuplicateProfileError",
    "NotFoundError",
    "ExternalServiceError",
    "TransientDataError",
    # Exception Handlers
    "register_exception_handlers",
    # Retry
    "execute_with_retry",
    # Tiers
    "SubscriptionTier",
    "TierFeatures",
    "TIER_FEATURES",
    "TIER_RANK",
    "get_tier_features",
    "meets_tier",
    "tier_rank",
]
