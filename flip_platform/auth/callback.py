"""OAuth redirect handling: start and finish the authorization-code flow."""

from typing import Annotated, Any
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from flip_platform.auth.credentials import CredentialStore, CredentialUser
from flip_platform.auth.profiles import ProfileStore
from flip_platform.auth.schemas import OAuthSignInOptions, ProfileCreate
from flip_platform.core.exceptions import (
    CredentialStoreError,
    DuplicateProfileError,
    ProfileStoreError,
)
from flip_platform.dependencies import (
    AuthServiceDep,
    CookieStorageDep,
    CredentialStoreDep,
    ProfileStoreDep,
)
from flip_platform.schemas.common import ApiResponse, MessageResponse

logger = structlog.get_logger(__name__)

router = APIRouter()

DEFAULT_NEXT = "/dashboard"
ERROR_PAGE = "/auth/error"


def safe_next_path(next_path: str | None) -> str:
    """Accept only same-site relative paths; anything else goes to the dashboard."""
    if not next_path or not next_path.startswith("/"):
        return DEFAULT_NEXT
    if next_path.startswith("//") or "\\" in next_path:
        return DEFAULT_NEXT
    return next_path


def callback_destination(callback_type: str | None, next_path: str | None) -> str:
    if callback_type == "signup":
        return "/dashboard?welcome=true"
    if callback_type == "recovery":
        return "/reset-password"
    if callback_type == "invite":
        return "/dashboard?invited=true"
    return safe_next_path(next_path)


def error_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(
        f"{ERROR_PAGE}?{urlencode({'message': message})}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


def _metadata_text(metadata: dict[str, Any], key: str) -> str | None:
    value = metadata.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def profile_seed(user: CredentialUser) -> dict[str, str | None]:
    """Initial profile attributes from provider metadata. Non-text values are ignored."""
    metadata = user.user_metadata or {}
    full_name = (_metadata_text(metadata, "full_name") or "").split()

    first_name = _metadata_text(metadata, "first_name") or (full_name[0] if full_name else None)
    last_name = _metadata_text(metadata, "last_name") or (" ".join(full_name[1:]) or None)
    avatar_url = _metadata_text(metadata, "avatar_url") or _metadata_text(metadata, "picture")

    return {"first_name": first_name, "last_name": last_name, "avatar_url": avatar_url}


async def ensure_user_profile(profiles: ProfileStore, user: CredentialUser) -> None:
    """Create the profile row if missing. Failures are logged, never raised."""
    if not user.email:
        logger.warning("callback_profile_skipped_no_email", auth_id=user.id)
        return

    try:
        if await profiles.get_by_auth_id(user.id) is not None:
            return
        await profiles.create(ProfileCreate(auth_id=user.id, email=user.email, **profile_seed(user)))
        logger.info("callback_profile_created", auth_id=user.id)
    except DuplicateProfileError:
        logger.info("callback_profile_create_race", auth_id=user.id)
    except ProfileStoreError as e:
        logger.error("callback_profile_sync_failed", auth_id=user.id, error=e.message)
    except ValidationError as e:
        logger.error(
            "callback_profile_seed_invalid",
            auth_id=user.id,
            fields=[".".join(str(loc) for loc in error["loc"]) for error in e.errors()],
        )


# =============================================================================
# Flow Start
# =============================================================================


@router.get("/providers")
async def list_providers(auth: AuthServiceDep) -> ApiResponse[list[dict[str, str]]]:
    """Enabled OAuth providers."""
    providers = [
        {"provider": provider.value, "name": auth.providers.display_name(provider)}
        for provider in auth.get_supported_oauth_providers()
    ]
    return ApiResponse(success=True, data=providers)


@router.get("/oauth/{provider}")
async def start_oauth(
    provider: str,
    auth: AuthServiceDep,
    storage: CookieStorageDep,
    next_path: Annotated[str | None, Query(alias="next")] = None,
) -> RedirectResponse:
    """Redirect to the provider's authorization page."""
    redirect_to = None
    if next_path:
        redirect_to = auth.providers.redirect_url(provider, next=safe_next_path(next_path))

    result = await auth.sign_in_with_oauth(provider, OAuthSignInOptions(redirect_to=redirect_to))
    if not result.success or result.data is None:
        return error_redirect(result.error or "Authentication failed")

    response = RedirectResponse(result.data, status_code=status.HTTP_303_SEE_OTHER)
    storage.apply(response)
    return response


# =============================================================================
# Flow Completion
# =============================================================================


@router.get("/callback")
async def auth_callback(
    credentials: CredentialStoreDep,
    profiles: ProfileStoreDep,
    storage: CookieStorageDep,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    callback_type: Annotated[str | None, Query(alias="type")] = None,
    next_path: Annotated[str | None, Query(alias="next")] = None,
) -> RedirectResponse:
    """Exchange an authorization code for a session.

    Errors never lead into the protected area; they redirect to the
    auth error page with a readable message.
    """
    if error:
        logger.warning("callback_provider_error", error=error, description=error_description)
        return error_redirect(f"Authentication failed: {error_description or error}")

    if not code:
        logger.warning("callback_missing_code")
        return error_redirect("Missing authorization code")

    try:
        response = await _complete_callback(credentials, profiles, code, callback_type, next_path)
    except Exception:
        logger.exception("callback_unexpected_error")
        response = error_redirect("An unexpected error occurred during authentication")

    storage.apply(response)
    return response


async def _complete_callback(
    credentials: CredentialStore,
    profiles: ProfileStore,
    code: str,
    callback_type: str | None,
    next_path: str | None,
) -> RedirectResponse:
    try:
        session = await credentials.exchange_code_for_session(code)
    except CredentialStoreError as e:
        logger.warning("callback_exchange_failed", error=e.message)
        return error_redirect("Authentication failed. Please try again.")

    user = session.user if session is not None else None
    if user is None or not user.id:
        logger.error("callback_no_user")
        return error_redirect("Authentication failed. No user data received.")

    await ensure_user_profile(profiles, user)

    logger.info(
        "callback_authenticated",
        auth_id=user.id,
        provider=user.app_metadata.get("provider", "email"),
        callback_type=callback_type or "login",
    )

    return RedirectResponse(
        callback_destination(callback_type, next_path),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.post("/callback", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
async def auth_callback_post() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"success": False, "error": "POST method not supported for auth callbacks"},
    )


@router.get("/error")
async def auth_error(message: str | None = None) -> MessageResponse:
    """Error page payload for failed authentication."""
    return MessageResponse(message=message or "An authentication error occurred.")
