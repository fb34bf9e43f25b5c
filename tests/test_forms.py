"""Tests for auth form schemas and validation helpers."""

import pytest
from pydantic import ValidationError

from flip_platform.auth.schemas import (
    ChangePasswordForm,
    DeleteAccountForm,
    ForgotPasswordForm,
    LoginForm,
    ProfileUpdate,
    ProfileUpdateForm,
    RegisterForm,
    ResetPasswordForm,
    form_error_message,
    sanitize_input,
    validate_email,
    validate_password,
)


class TestValidationHelpers:
    """Tests for standalone validators."""

    @pytest.mark.parametrize(
        ("email", "expected"),
        [
            ("anna@example.se", True),
            ("not-an-email", False),
            ("", False),
        ],
    )
    def test_validate_email(self, email: str, expected: bool) -> None:
        """Test email syntax validation."""
        assert validate_email(email) is expected

    @pytest.mark.parametrize(
        ("password", "expected"),
        [
            ("Secret123", True),
            ("Sh0rt", False),
            ("alllowercase1", False),
            ("ALLUPPERCASE1", False),
            ("NoDigitsHere", False),
        ],
    )
    def test_validate_password(self, password: str, expected: bool) -> None:
        """Test password strength rules."""
        assert validate_password(password) is expected

    def test_sanitize_input(self) -> None:
        """Test trimming and angle bracket removal."""
        assert sanitize_input("  <b>Anna</b> ") == "bAnna/b"


class TestLoginForm:
    """Tests for LoginForm."""

    def test_short_password_rejected(self) -> None:
        """Test passwords under six characters are rejected."""
        with pytest.raises(ValidationError):
            LoginForm(email="anna@example.se", password="12345")


class TestRegisterForm:
    """Tests for RegisterForm."""

    def test_valid_form(self) -> None:
        """Test a complete, consistent form validates."""
        form = RegisterForm(
            email="anna@example.se",
            password="Secret123",
            confirm_password="Secret123",
            agreed_to_terms=True,
        )

        assert form.email == "anna@example.se"

    def test_mismatched_passwords(self) -> None:
        """Test confirm password must match."""
        with pytest.raises(ValidationError, match="Passwords don't match"):
            RegisterForm(
                email="anna@example.se",
                password="Secret123",
                confirm_password="Secret124",
                agreed_to_terms=True,
            )

    def test_terms_required(self) -> None:
        """Test the terms box must be ticked."""
        with pytest.raises(ValidationError, match="You must agree to the terms"):
            RegisterForm(
                email="anna@example.se",
                password="Secret123",
                confirm_password="Secret123",
                agreed_to_terms=False,
            )

    def test_weak_password(self) -> None:
        """Test the strength rule applies."""
        with pytest.raises(ValidationError, match="uppercase, lowercase, and number"):
            RegisterForm(
                email="anna@example.se",
                password="weakpassword",
                confirm_password="weakpassword",
                agreed_to_terms=True,
            )


class TestPasswordForms:
    """Tests for reset and change password forms."""

    def test_reset_password_mismatch(self) -> None:
        """Test reset password confirmation."""
        with pytest.raises(ValidationError):
            ResetPasswordForm(password="Secret123", confirm_password="Other1234")

    def test_change_password_requires_current(self) -> None:
        """Test the current password cannot be empty."""
        with pytest.raises(ValidationError):
            ChangePasswordForm(
                current_password="",
                new_password="Secret123",
                confirm_new_password="Secret123",
            )

    def test_change_password_mismatch(self) -> None:
        """Test new password confirmation."""
        with pytest.raises(ValidationError, match="New passwords don't match"):
            ChangePasswordForm(
                current_password="Old12345",
                new_password="Secret123",
                confirm_new_password="Secret321",
            )


class TestProfileForms:
    """Tests for profile update schemas."""

    def test_profile_update_rejects_tier(self) -> None:
        """Test subscription tier cannot be changed through a profile update."""
        with pytest.raises(ValidationError):
            ProfileUpdate(subscription_tier="gold")

    def test_profile_update_changes_only_set_fields(self) -> None:
        """Test unset fields are not part of the change set."""
        assert ProfileUpdate(first_name="Anna").changes() == {"first_name": "Anna"}

    def test_profile_form_to_update(self) -> None:
        """Test the form converts to a full update."""
        form = ProfileUpdateForm(
            first_name="Anna",
            last_name="Svensson",
            location_city="Uppsala",
            location_region="Uppsala län",
        )

        assert form.to_update().changes() == {
            "first_name": "Anna",
            "last_name": "Svensson",
            "location_city": "Uppsala",
            "location_region": "Uppsala län",
        }

    def test_profile_form_limits_name_length(self) -> None:
        """Test names over fifty characters are rejected."""
        with pytest.raises(ValidationError):
            ProfileUpdateForm(
                first_name="A" * 51,
                last_name="Svensson",
                location_city="Uppsala",
                location_region="Uppsala län",
            )


class TestDeleteAccountForm:
    """Tests for DeleteAccountForm."""

    def test_requires_literal_confirmation(self) -> None:
        """Test the confirmation must be exactly DELETE."""
        with pytest.raises(ValidationError):
            DeleteAccountForm(confirmation="delete", current_password="Secret123")

    def test_valid_confirmation(self) -> None:
        """Test the exact confirmation passes."""
        form = DeleteAccountForm(confirmation="DELETE", current_password="Secret123")

        assert form.confirmation == "DELETE"


class TestForgotPasswordForm:
    """Tests for ForgotPasswordForm."""

    def test_invalid_email_rejected(self) -> None:
        """Test the address must be valid."""
        with pytest.raises(ValidationError):
            ForgotPasswordForm(email="anna@")

    def test_valid_email(self) -> None:
        """Test a valid address is accepted."""
        assert ForgotPasswordForm(email="anna@example.se").email == "anna@example.se"


class TestFormErrorMessage:
    """Tests for form_error_message."""

    def test_email_errors_use_friendly_text(self) -> None:
        """Test email failures read as a plain sentence."""
        with pytest.raises(ValidationError) as exc_info:
            ForgotPasswordForm(email="anna@")

        assert form_error_message(exc_info.value) == "Please enter a valid email address"

    def test_validator_prefix_is_dropped(self) -> None:
        """Test custom validator messages are shown as written."""
        with pytest.raises(ValidationError) as exc_info:
            ResetPasswordForm(password="Secret123", confirm_password="Other1234")

        assert form_error_message(exc_info.value) == "Passwords don't match"
