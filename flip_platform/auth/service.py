"""Auth service: credential operations and profile synchronization.

Every operation returns an ``AuthResult``; credential and profile-store
failures become failure results with a human-readable message.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from flip_platform.auth.credentials import CredentialSession, CredentialStore, CredentialUser
from flip_platform.auth.profiles import ProfileStore, get_or_create_profile
from flip_platform.auth.providers import OAuthProvider, OAuthProviderRegistry
from flip_platform.auth.result import AuthResult
from flip_platform.auth.schemas import (
    AuthSession,
    AuthUser,
    OAuthSignInOptions,
    ProfileCreate,
    ProfileUpdate,
    SignUpData,
    UserProfile,
)
from flip_platform.config import Settings
from flip_platform.core.exceptions import (
    CredentialServiceUnavailableError,
    CredentialStoreError,
    DuplicateProfileError,
    ProfileStoreError,
    SessionMissingError,
)
from flip_platform.core.tiers import SubscriptionTier, meets_tier

logger = structlog.get_logger(__name__)

NOT_AUTHENTICATED = "User not authenticated"


class AuthService:
    """Single entry point for sign-in, registration, and account changes."""

    def __init__(
        self,
        credentials: CredentialStore,
        profiles: ProfileStore,
        providers: OAuthProviderRegistry,
        settings: Settings,
    ) -> None:
        self.credentials = credentials
        self.profiles = profiles
        self.providers = providers
        self.settings = settings

    # ==========================================================================
    # Profile Helpers
    # ==========================================================================

    async def _ensure_profile(self, user: CredentialUser) -> UserProfile:
        if not user.email:
            raise ProfileStoreError("Credential user has no email address")
        return await get_or_create_profile(self.profiles, user.id, user.email)

    async def _record_login(self, auth_id: str) -> None:
        try:
            await self.profiles.update(auth_id, {"last_login_at": datetime.now(timezone.utc)})
        except ProfileStoreError as e:
            logger.warning("auth_last_login_update_failed", auth_id=auth_id, error=e.message)

    async def _authenticated_user(self) -> CredentialUser | None:
        try:
            return await self.credentials.get_user()
        except CredentialStoreError as e:
            logger.info("auth_user_lookup_failed", error=e.message)
            return None

    # ==========================================================================
    # Sign In / Sign Up
    # ==========================================================================

    async def sign_in(self, email: str, password: str) -> AuthResult[AuthSession]:
        try:
            session = await self.credentials.sign_in_with_password(email, password)
        except CredentialStoreError as e:
            logger.info("auth_sign_in_failed", error_code=e.error_code)
            return AuthResult.fail(e.message or "Authentication failed")

        try:
            profile = await self._ensure_profile(session.user)
        except ProfileStoreError as e:
            logger.error("auth_profile_unavailable", auth_id=session.user.id, error=e.message)
            return AuthResult.fail("Failed to retrieve user profile")

        await self._record_login(session.user.id)
        logger.info("auth_signed_in", auth_id=session.user.id, user_id=str(profile.id))

        return AuthResult.ok(AuthSession.compose(session, AuthUser.from_profile(profile)))

    async def sign_up(self, data: SignUpData) -> AuthResult[AuthUser]:
        metadata = {
            key: value
            for key, value in (("first_name", data.first_name), ("last_name", data.last_name))
            if value
        }

        try:
            user, _ = await self.credentials.sign_up(data.email, data.password, metadata)
        except CredentialStoreError as e:
            logger.info("auth_sign_up_failed", error_code=e.error_code)
            return AuthResult.fail(e.message or "User registration failed")

        if not user.id:
            return AuthResult.fail("User registration failed")

        new_profile = ProfileCreate(
            auth_id=user.id,
            email=data.email,
            subscription_tier=SubscriptionTier.FREEMIUM,
            is_active=True,
            first_name=data.first_name,
            last_name=data.last_name,
            location_city=data.location_city,
            location_region=data.location_region,
        )

        try:
            try:
                profile = await self.profiles.create(new_profile)
            except DuplicateProfileError:
                # A sign-in listener provisioned the row first; fill in the form fields
                profile = await self.profiles.update(
                    user.id,
                    new_profile.model_dump(
                        include={"first_name", "last_name", "location_city", "location_region"},
                        exclude_none=True,
                    ),
                )
                if profile is None:
                    raise ProfileStoreError("Profile missing after duplicate insert") from None
        except ProfileStoreError as e:
            # Credential record is left in place
            logger.error(
                "auth_sign_up_orphaned_credential",
                auth_id=user.id,
                error=e.message,
            )
            return AuthResult.fail("Failed to create user profile")

        logger.info("auth_signed_up", auth_id=user.id, user_id=str(profile.id))
        return AuthResult.ok(AuthUser.from_profile(profile))

    # ==========================================================================
    # OAuth
    # ==========================================================================

    def get_supported_oauth_providers(self) -> list[OAuthProvider]:
        return [config.provider for config in self.providers.enabled_providers()]

    def is_oauth_provider_enabled(self, provider: OAuthProvider | str) -> bool:
        return self.providers.is_enabled(provider)

    async def sign_in_with_oauth(
        self,
        provider: OAuthProvider | str,
        options: OAuthSignInOptions | None = None,
    ) -> AuthResult[str]:
        """Start an OAuth flow, returning the provider authorization URL.

        The flow completes in the callback handler; no session is created here.
        """
        name = provider.value if isinstance(provider, OAuthProvider) else str(provider)
        if not self.providers.is_enabled(provider):
            logger.info("auth_oauth_provider_unavailable", provider=name)
            return AuthResult.fail(f"{name} authentication is not currently available")

        options = options or OAuthSignInOptions()
        config = self.providers.get_config(provider)
        redirect_to = options.redirect_to or self.providers.redirect_url(provider, next="/dashboard")

        try:
            url = await self.credentials.sign_in_with_oauth(
                name,
                redirect_to,
                scopes=options.scopes or (config.scopes if config else None),
                query_params=options.query_params,
            )
        except CredentialStoreError as e:
            logger.warning("auth_oauth_start_failed", provider=name, error=e.message)
            return AuthResult.fail(e.message)

        return AuthResult.ok(url)

    # ==========================================================================
    # Session
    # ==========================================================================

    async def sign_out(self) -> AuthResult[None]:
        try:
            await self.credentials.sign_out()
        except CredentialStoreError as e:
            logger.warning("auth_sign_out_failed", error=e.message)
            return AuthResult.fail(e.message)
        return AuthResult.ok()

    async def get_current_user(self) -> AuthUser | None:
        user = await self._authenticated_user()
        if user is None:
            return None

        try:
            profile = await self.profiles.get_by_auth_id(user.id)
        except ProfileStoreError as e:
            logger.warning("auth_current_profile_failed", auth_id=user.id, error=e.message)
            return None

        return AuthUser.from_profile(profile) if profile else None

    async def get_current_session(self) -> CredentialSession | None:
        try:
            return await self.credentials.get_session()
        except CredentialStoreError as e:
            logger.info("auth_session_lookup_failed", error=e.message)
            return None

    async def resolve_user(self, user: CredentialUser) -> AuthUser | None:
        """Profile for an authenticated identity, provisioning it if absent."""
        try:
            profile = await self._ensure_profile(user)
        except ProfileStoreError as e:
            logger.warning("auth_resolve_user_failed", auth_id=user.id, error=e.message)
            return None
        return AuthUser.from_profile(profile)

    # ==========================================================================
    # Passwords
    # ==========================================================================

    async def reset_password(self, email: str) -> AuthResult[None]:
        redirect_to = f"{self.settings.oauth_callback_url}?type=recovery"
        try:
            await self.credentials.reset_password_for_email(email, redirect_to)
        except CredentialStoreError as e:
            return AuthResult.fail(e.message)
        return AuthResult.ok()

    async def update_password(self, new_password: str) -> AuthResult[None]:
        """Set a new password on the current session without re-verification."""
        try:
            await self.credentials.update_user(password=new_password)
        except SessionMissingError:
            return AuthResult.fail(NOT_AUTHENTICATED)
        except CredentialStoreError as e:
            return AuthResult.fail(e.message)

        logger.info("auth_password_updated")
        return AuthResult.ok()

    async def _verify_password(self, email: str, password: str) -> CredentialStoreError | None:
        try:
            await self.credentials.sign_in_with_password(email, password)
        except CredentialStoreError as e:
            return e
        return None

    async def change_password(self, current_password: str, new_password: str) -> AuthResult[None]:
        user = await self._authenticated_user()
        if user is None or not user.email:
            return AuthResult.fail(NOT_AUTHENTICATED)

        error = await self._verify_password(user.email, current_password)
        if isinstance(error, CredentialServiceUnavailableError):
            return AuthResult.fail(error.message)
        if error is not None:
            logger.info("auth_change_password_rejected", auth_id=user.id)
            return AuthResult.fail("Current password is incorrect")

        try:
            await self.credentials.update_user(password=new_password)
        except CredentialStoreError as e:
            return AuthResult.fail(e.message)

        logger.info("auth_password_changed", auth_id=user.id)
        return AuthResult.ok()

    # ==========================================================================
    # Profile / Account
    # ==========================================================================

    async def update_profile(self, updates: ProfileUpdate) -> AuthResult[AuthUser]:
        user = await self._authenticated_user()
        if user is None:
            return AuthResult.fail(NOT_AUTHENTICATED)

        changes: dict[str, Any] = updates.changes()
        try:
            if changes:
                profile = await self.profiles.update(user.id, changes)
            else:
                profile = await self.profiles.get_by_auth_id(user.id)
        except ProfileStoreError as e:
            return AuthResult.fail(e.message or "Failed to update profile")

        if profile is None:
            return AuthResult.fail("Failed to update profile")

        logger.info("auth_profile_updated", auth_id=user.id, fields=sorted(changes))
        return AuthResult.ok(AuthUser.from_profile(profile))

    async def delete_account(self, current_password: str) -> AuthResult[None]:
        """Deactivate the profile, then sign out.

        The account stays deactivated even if the sign-out step fails.
        """
        user = await self._authenticated_user()
        if user is None or not user.email:
            return AuthResult.fail(NOT_AUTHENTICATED)

        error = await self._verify_password(user.email, current_password)
        if isinstance(error, CredentialServiceUnavailableError):
            return AuthResult.fail(error.message)
        if error is not None:
            return AuthResult.fail("Password is incorrect")

        try:
            deactivated = await self.profiles.deactivate(user.id)
        except ProfileStoreError as e:
            logger.error("auth_deactivate_failed", auth_id=user.id, error=e.message)
            return AuthResult.fail("Failed to deactivate account")

        if not deactivated:
            logger.warning("auth_deactivate_no_profile", auth_id=user.id)
        else:
            logger.info("auth_account_deactivated", auth_id=user.id)

        try:
            await self.credentials.sign_out()
        except CredentialStoreError as e:
            logger.error("auth_sign_out_after_delete_failed", auth_id=user.id, error=e.message)

        return AuthResult.ok()

    async def has_required_tier(self, required: SubscriptionTier | str) -> bool:
        user = await self.get_current_user()
        if user is None or not user.is_active:
            return False
        return meets_tier(user.subscription_tier, required)
