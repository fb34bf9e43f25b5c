"""Tests for custom exceptions."""

import pytest

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
    TokenInvalidError,
    TransientDataError,
)

# =============================================================================
# Base Exception Tests
# =============================================================================


class TestAppException:
    """Tests for AppException base class."""

    def test_default_values(self) -> None:
        """Test AppException with default values."""
        exc = AppException(message="Test error")

        assert exc.message == "Test error"
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert str(exc) == "Test error"


# =============================================================================
# Credential Error Tests
# =============================================================================


class TestCredentialErrors:
    """Tests for credential store errors."""

    def test_credential_store_error_status(self) -> None:
        """Test the upstream status is kept in details."""
        exc = CredentialStoreError("User already registered", status=422)

        assert exc.status == 422
        assert exc.status_code == 401
        assert exc.details == {"status": 422}

    def test_invalid_credentials(self) -> None:
        """Test InvalidCredentialsError defaults."""
        exc = InvalidCredentialsError()

        assert exc.message == "Invalid login credentials"
        assert exc.error_code == "INVALID_CREDENTIALS"
        assert exc.status == 400

    def test_service_unavailable(self) -> None:
        """Test unavailability is a 503 credential error."""
        exc = CredentialServiceUnavailableError()

        assert isinstance(exc, CredentialStoreError)
        assert exc.status_code == 503

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (SessionMissingError(), "SESSION_MISSING"),
            (TokenInvalidError(), "TOKEN_INVALID"),
            (AuthOperationError("Password is incorrect"), "AUTH_OPERATION_FAILED"),
        ],
    )
    def test_error_codes(self, exc: AuthenticationError, code: str) -> None:
        """Test subclasses carry their own codes."""
        assert exc.error_code == code
        assert isinstance(exc, AuthenticationError)


# =============================================================================
# Authorization / Profile Error Tests
# =============================================================================


class TestAuthorizationErrors:
    """Tests for authorization errors."""

    def test_insufficient_tier_error(self) -> None:
        """Test InsufficientTierError."""
        exc = InsufficientTierError(required_tier="gold")

        assert exc.message == "This feature requires gold tier or higher"
        assert exc.status_code == 403
        assert exc.details == {"required_tier": "gold"}

    def test_account_inactive_error(self) -> None:
        """Test AccountInactiveError."""
        exc = AccountInactiveError()

        assert isinstance(exc, AuthorizationError)
        assert exc.error_code == "ACCOUNT_INACTIVE"


class TestProfileErrors:
    """Tests for profile store errors."""

    def test_duplicate_profile(self) -> None:
        """Test DuplicateProfileError is a 409 profile error."""
        exc = DuplicateProfileError("auth-1")

        assert isinstance(exc, ProfileStoreError)
        assert exc.status_code == 409
        assert exc.details == {"auth_id": "auth-1"}

    def test_not_found_with_identifier(self) -> None:
        """Test NotFoundError details."""
        exc = NotFoundError("Notification", "n-1")

        assert exc.message == "Notification not found"
        assert exc.details == {"resource": "Notification", "identifier": "n-1"}


class TestServiceErrors:
    """Tests for external and transient errors."""

    def test_external_service_error(self) -> None:
        """Test ExternalServiceError message format."""
        exc = ExternalServiceError("Database", "get_user failed")

        assert exc.message == "Database: get_user failed"
        assert exc.status_code == 502

    def test_transient_data_error(self) -> None:
        """Test TransientDataError is a 503 external error."""
        exc = TransientDataError()

        assert isinstance(exc, ExternalServiceError)
        assert exc.status_code == 503

    def test_configuration_error(self) -> None:
        """Test ConfigurationError carries field details."""
        exc = ConfigurationError(details={"fields": ["supabase_url"]})

        assert exc.error_code == "CONFIGURATION_ERROR"
        assert exc.details == {"fields": ["supabase_url"]}
