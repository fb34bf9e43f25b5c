"""Custom exception classes."""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Configuration Errors (fatal at startup)
# =============================================================================


class ConfigurationError(AppException):
    """Required configuration is missing or invalid."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )


# =============================================================================
# Credential Errors (401) - surfaced as messages, never retried
# =============================================================================


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED",
            details=details,
        )


class CredentialStoreError(AuthenticationError):
    """The credential store rejected an operation."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status: int | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details={"status": status} if status is not None else None,
        )
        self.error_code = "CREDENTIAL_ERROR"
        self.status = status


class InvalidCredentialsError(CredentialStoreError):
    """Invalid email or password."""

    def __init__(self, message: str = "Invalid login credentials") -> None:
        super().__init__(message=message, status=400)
        self.error_code = "INVALID_CREDENTIALS"


class SessionMissingError(CredentialStoreError):
    """Operation requires a session but none is present."""

    def __init__(self) -> None:
        super().__init__(message="Auth session missing")
        self.error_code = "SESSION_MISSING"


class TokenExpiredError(CredentialStoreError):
    """Access token has expired."""

    def __init__(self, message: str = "Token has expired", status: int | None = 401) -> None:
        super().__init__(message=message, status=status)
        self.error_code = "TOKEN_EXPIRED"


class TokenInvalidError(CredentialStoreError):
    """Invalid token."""

    def __init__(self, reason: str = "Invalid token") -> None:
        super().__init__(message=reason)
        self.error_code = "TOKEN_INVALID"


class AuthOperationError(AuthenticationError):
    """A failed auth operation, raised at the UI boundary only."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message)
        self.error_code = "AUTH_OPERATION_FAILED"


# =============================================================================
# Authorization Errors (403)
# =============================================================================


class AuthorizationError(AppException):
    """User not authorized for this action."""

    def __init__(
        self,
        message: str = "Access denied",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="ACCESS_DENIED",
            details=details,
        )


class InsufficientTierError(AuthorizationError):
    """User's tier is insufficient for this feature."""

    def __init__(self, required_tier: str) -> None:
        super().__init__(
            message=f"This feature requires {required_tier} tier or higher",
            details={"required_tier": required_tier},
        )
        self.error_code = "INSUFFICIENT_TIER"


class AccountInactiveError(AuthorizationError):
    """User account is inactive."""

    def __init__(self) -> None:
        super().__init__(message="Account is inactive")
        self.error_code = "ACCOUNT_INACTIVE"


# =============================================================================
# Profile-sync Errors
# =============================================================================


class ProfileStoreError(AppException):
    """Profile row could not be read or written."""

    def __init__(
        self,
        message: str = "Profile store unavailable",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="PROFILE_STORE_ERROR",
            details=details,
        )


class DuplicateProfileError(ProfileStoreError):
    """A profile already exists for this auth identity."""

    def __init__(self, auth_id: str) -> None:
        super().__init__(
            message="Profile already exists",
            details={"auth_id": auth_id},
        )
        self.status_code = 409
        self.error_code = "DUPLICATE_PROFILE"


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ) -> None:
        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="RESOURCE_NOT_FOUND",
            details=details,
        )


# =============================================================================
# Transient / External Service Errors (502, 503)
# =============================================================================


class ExternalServiceError(AppException):
    """External service error (auth provider, database, ...)."""

    def __init__(
        self,
        service: str,
        message: str = "Service unavailable",
    ) -> None:
        super().__init__(
            message=f"{service}: {message}",
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service},
        )


class CredentialServiceUnavailableError(CredentialStoreError):
    """Auth provider could not be reached or failed server-side."""

    def __init__(
        self,
        message: str = "Authentication service unavailable",
        retry_after: int = 5,
    ) -> None:
        super().__init__(message=message)
        self.status_code = 503
        self.error_code = "AUTH_SERVICE_UNAVAILABLE"
        self.retry_after = retry_after


class TransientDataError(ExternalServiceError):
    """Retryable data operation failure."""

    def __init__(
        self,
        message: str = "Database temporarily unavailable",
        retry_after: int = 2,
    ) -> None:
        super().__init__(service="Database", message=message)
        self.status_code = 503
        self.error_code = "TRANSIENT_DATA_ERROR"
        self.retry_after = retry_after
