"""Access middleware for protected routes."""

from typing import Callable
from urllib.parse import urlencode

import structlog
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from flip_platform.auth.credentials import CookieStorage
from flip_platform.auth.schemas import UserProfile
from flip_platform.core.exceptions import CredentialStoreError, ProfileStoreError
from flip_platform.core.logging import log_context

logger = structlog.get_logger(__name__)

PUBLIC_ROUTES = (
    "/",
    "/login",
    "/register",
    "/forgot-password",
    "/reset-password",
    "/auth",
    "/api",
    "/_next",
    "/favicon.ico",
    "/robots.txt",
    "/manifest.json",
    "/static",
)

PROTECTED_PREFIX = "/dashboard"
LOGIN_ROUTE = "/login"


def is_public_route(path: str) -> bool:
    """Root matches exactly; every other entry is a prefix."""
    for route in PUBLIC_ROUTES:
        if route == "/":
            if path == "/":
                return True
        elif path.startswith(route):
            return True
    return False


def is_protected_route(path: str) -> bool:
    return path.startswith(PROTECTED_PREFIX)


def login_redirect_url(request: Request) -> str:
    """Login URL carrying the original path and query as ``redirectTo``."""
    intended = request.url.path
    if request.url.query:
        intended = f"{intended}?{request.url.query}"

    if intended and intended not in ("/", LOGIN_ROUTE):
        return f"{LOGIN_ROUTE}?{urlencode({'redirectTo': intended})}"
    return LOGIN_ROUTE


class AccessMiddleware(BaseHTTPMiddleware):
    """Gate protected routes on a valid session and an active profile.

    Collaborators are read from ``app.state``: ``settings``,
    ``credential_factory`` and ``profile_store``. Every failure, including
    unexpected errors, redirects to the login page.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        path = request.url.path
        if is_public_route(path) or not is_protected_route(path):
            return await call_next(request)

        settings = request.app.state.settings
        storage = CookieStorage(request.cookies, secure=settings.is_production)

        try:
            profile = await self._authorize(request, storage)
        except Exception:
            logger.exception("middleware_unexpected_error", path=path)
            profile = None

        if profile is None:
            response = RedirectResponse(login_redirect_url(request), status_code=307)
            storage.apply(response)
            return response

        request.state.profile = profile
        response = await call_next(request)
        storage.apply(response)
        return response

    async def _authorize(
        self,
        request: Request,
        storage: CookieStorage,
    ) -> UserProfile | None:
        state = request.app.state
        credentials = state.credential_factory(storage)

        # 1-2. Session present and readable
        try:
            session = await credentials.get_session()
        except CredentialStoreError as e:
            logger.warning("middleware_session_error", error=e.message)
            return None

        if session is None:
            logger.info("middleware_no_session", path=request.url.path)
            return None

        log_context(auth_id=session.user.id)

        # 3-4. Profile exists and is active
        try:
            profile = await state.profile_store.get_by_auth_id(session.user.id)
        except ProfileStoreError as e:
            logger.warning("middleware_profile_error", error=e.message)
            return None

        if profile is None:
            logger.warning("middleware_profile_missing")
            return None

        if not profile.is_active:
            logger.info("middleware_account_inactive")
            return None

        # 5. Refresh sessions close to expiry
        if session.seconds_until_expiry() < state.settings.session_refresh_window_seconds:
            try:
                await credentials.refresh_session()
            except CredentialStoreError as e:
                logger.warning("middleware_refresh_failed", error=e.message)
                return None
            logger.info("middleware_session_refreshed")

        logger.info(
            "middleware_access_granted",
            user_id=str(profile.id),
            user_agent=(request.headers.get("user-agent") or "")[:50],
        )
        return profile
