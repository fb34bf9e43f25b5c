"""Pydantic schemas for profiles, sessions, and auth forms."""

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from flip_platform.auth.credentials import CredentialSession
from flip_platform.core.tiers import SubscriptionTier

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PASSWORD_RULE_MESSAGE = "Password must contain uppercase, lowercase, and number"


# =============================================================================
# Profile Schemas
# =============================================================================


class UserProfile(BaseModel):
    """A profile row as returned by a profile store."""

    id: UUID
    auth_id: str
    email: str
    subscription_tier: SubscriptionTier = SubscriptionTier.FREEMIUM
    is_active: bool = True
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None
    location_city: str | None = None
    location_region: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileCreate(BaseModel):
    """Values for a new profile row."""

    auth_id: str
    email: str
    subscription_tier: SubscriptionTier = SubscriptionTier.FREEMIUM
    is_active: bool = True
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None
    location_city: str | None = None
    location_region: str | None = None


class ProfileUpdate(BaseModel):
    """Mutable profile fields.

    Tier and active flag are deliberately absent; unknown fields are rejected.
    """

    first_name: str | None = None
    last_name: str | None = None
    location_city: str | None = None
    location_region: str | None = None

    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, str | None]:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


class AuthUser(BaseModel):
    """Public view of the signed-in user."""

    id: UUID
    email: str
    subscription_tier: SubscriptionTier
    is_active: bool
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None
    location_city: str | None = None
    location_region: str | None = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "AuthUser":
        return cls(
            id=profile.id,
            email=profile.email,
            subscription_tier=profile.subscription_tier,
            is_active=profile.is_active,
            first_name=profile.first_name,
            last_name=profile.last_name,
            avatar_url=profile.avatar_url,
            location_city=profile.location_city,
            location_region=profile.location_region,
        )


class AuthSession(BaseModel):
    """Credential session composed with the user's profile."""

    user: AuthUser
    access_token: str
    expires_at: datetime

    @classmethod
    def compose(cls, session: CredentialSession, user: AuthUser) -> "AuthSession":
        return cls(
            user=user,
            access_token=session.access_token,
            expires_at=session.expires_at_datetime,
        )


# =============================================================================
# Auth Service Inputs
# =============================================================================


class SignUpData(BaseModel):
    """Registration input."""

    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    location_city: str | None = None
    location_region: str | None = None


class OAuthSignInOptions(BaseModel):
    """Options for starting an OAuth authorization redirect."""

    redirect_to: str | None = None
    scopes: str | None = None
    query_params: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Form Schemas
# =============================================================================


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class RegisterForm(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    agreed_to_terms: bool

    _strength = field_validator("password")(_check_password_strength)

    @field_validator("agreed_to_terms")
    @classmethod
    def must_agree(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must agree to the terms")
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class ForgotPasswordForm(BaseModel):
    email: EmailStr


class ResetPasswordForm(BaseModel):
    password: str
    confirm_password: str

    _strength = field_validator("password")(_check_password_strength)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class ChangePasswordForm(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str
    confirm_new_password: str

    _strength = field_validator("new_password")(_check_password_strength)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordForm":
        if self.new_password != self.confirm_new_password:
            raise ValueError("New passwords don't match")
        return self


class ProfileUpdateForm(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    location_city: str = Field(min_length=1, max_length=100)
    location_region: str = Field(min_length=1, max_length=100)

    def to_update(self) -> ProfileUpdate:
        return ProfileUpdate(**self.model_dump())


class DeleteAccountForm(BaseModel):
    confirmation: Literal["DELETE"]
    current_password: str = Field(min_length=1)


# =============================================================================
# Validation Helpers
# =============================================================================

_email_adapter = TypeAdapter(EmailStr)


def validate_email(email: str) -> bool:
    """True if ``email`` is a syntactically valid address."""
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True


def validate_password(password: str) -> bool:
    """True if ``password`` meets the registration strength rules."""
    try:
        _check_password_strength(password)
    except ValueError:
        return False
    return True


def sanitize_input(value: str) -> str:
    """Trim whitespace and drop angle brackets."""
    return value.strip().replace("<", "").replace(">", "")


def form_error_message(exc: ValidationError) -> str:
    """First validation failure of a form, phrased for display."""
    error = exc.errors()[0]
    if error["loc"] and error["loc"][0] == "email":
        return "Please enter a valid email address"
    return error["msg"].removeprefix("Value error, ")
