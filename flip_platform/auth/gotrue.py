"""Supabase GoTrue credential store client.

Talks to the GoTrue REST API over httpx and keeps the serialized session
in a ``SessionStorage`` (cookies on the server, memory elsewhere).
"""

import base64
import hashlib
import inspect
import secrets
import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog
from jose import JWTError, jwt
from pydantic import ValidationError

from flip_platform.auth.credentials import (
    AuthChangeEvent,
    AuthStateCallback,
    CredentialSession,
    CredentialUser,
    MemoryStorage,
    SessionStorage,
    Subscription,
)
from flip_platform.config import Settings
from flip_platform.core.exceptions import (
    CredentialServiceUnavailableError,
    CredentialStoreError,
    InvalidCredentialsError,
    SessionMissingError,
    TokenExpiredError,
    TokenInvalidError,
)

logger = structlog.get_logger(__name__)

SESSION_PREFIX = "base64-"

# Statuses meaning the server already considers the session gone
SESSION_GONE_STATUSES = (401, 403, 404)


def encode_session(session: CredentialSession) -> str:
    payload = base64.urlsafe_b64encode(session.model_dump_json().encode()).decode()
    return f"{SESSION_PREFIX}{payload}"


def decode_session(raw: str) -> CredentialSession:
    """Parse a stored session.

    Raises:
        ValueError: If the stored value is not a valid session
    """
    if raw.startswith(SESSION_PREFIX):
        raw = base64.urlsafe_b64decode(raw[len(SESSION_PREFIX) :].encode()).decode()
    return CredentialSession.model_validate_json(raw)


def generate_pkce_pair() -> tuple[str, str]:
    """Return a (verifier, S256 challenge) pair."""
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode()).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return verifier, challenge


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value

    return f"Request failed with status {response.status_code}"


class GoTrueCredentialStore:
    """CredentialStore implementation backed by Supabase GoTrue."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        storage: SessionStorage | None = None,
    ) -> None:
        self.settings = settings
        self.storage = storage if storage is not None else MemoryStorage()
        self.storage_key = settings.session_cookie_name
        self._http = http_client
        self._listeners: dict[int, AuthStateCallback] = {}
        self._next_listener_id = 0

    @property
    def verifier_key(self) -> str:
        return f"{self.storage_key}-code-verifier"

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        token = access_token or self.settings.supabase_anon_key
        headers = {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {token}",
        }

        try:
            response = await self._http.request(
                method,
                f"{self.settings.auth_base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.settings.credential_request_timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = _error_message(e.response)
            logger.warning(
                "credential_request_rejected",
                operation=operation,
                status_code=status,
                error=message,
            )
            if status >= 500:
                raise CredentialServiceUnavailableError(
                    f"Authentication service error ({status})"
                ) from e
            if status == 401 and "expired" in message.lower():
                raise TokenExpiredError(message) from e
            raise CredentialStoreError(message, status=status) from e
        except httpx.RequestError as e:
            logger.error("credential_request_error", operation=operation, error=str(e))
            raise CredentialServiceUnavailableError(
                f"Authentication service unreachable: {e}"
            ) from e

        if not response.content:
            return {}
        return response.json()

    # =========================================================================
    # Session Persistence
    # =========================================================================

    def _parse_session(self, data: dict[str, Any]) -> CredentialSession:
        expires_at = data.get("expires_at")
        if expires_at is None:
            expires_at = int(time.time()) + int(data.get("expires_in", 3600))

        try:
            return CredentialSession(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_at=expires_at,
                token_type=data.get("token_type", "bearer"),
                user=CredentialUser.model_validate(data["user"]),
            )
        except (KeyError, ValidationError) as e:
            raise CredentialStoreError("Malformed session response") from e

    def _save_session(self, session: CredentialSession) -> None:
        self.storage.set_item(self.storage_key, encode_session(session))

    def _remove_session(self) -> None:
        self.storage.remove_item(self.storage_key)

    def _verify_session(self, session: CredentialSession) -> CredentialSession:
        """Check the access token signature and bind expiry to its claims."""
        try:
            claims = jwt.decode(
                session.access_token,
                self.settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenInvalidError("Session token signature is invalid") from e

        if claims.get("sub") != session.user.id:
            raise TokenInvalidError("Session token does not match session user")

        exp = claims.get("exp")
        if isinstance(exp, int) and exp != session.expires_at:
            session = session.model_copy(update={"expires_at": exp})
        return session

    async def get_session(self) -> CredentialSession | None:
        """Read the stored session without contacting the server.

        Raises:
            TokenInvalidError: If the stored session is corrupt or forged
        """
        raw = self.storage.get_item(self.storage_key)
        if not raw:
            return None

        try:
            session = decode_session(raw)
        except ValueError as e:
            raise TokenInvalidError("Stored session is corrupt") from e

        if self.settings.supabase_jwt_secret:
            session = self._verify_session(session)
        return session

    async def _require_session(self) -> CredentialSession:
        session = await self.get_session()
        if session is None:
            raise SessionMissingError()
        return session

    # =========================================================================
    # Events
    # =========================================================================

    def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription:
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = callback

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return Subscription(id=listener_id, unsubscribe=unsubscribe)

    async def _notify(
        self,
        event: AuthChangeEvent,
        session: CredentialSession | None,
    ) -> None:
        for listener_id, callback in list(self._listeners.items()):
            try:
                result = callback(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "auth_listener_failed",
                    listener_id=listener_id,
                    auth_event=event.value,
                )

    # =========================================================================
    # Operations
    # =========================================================================

    async def sign_in_with_password(self, email: str, password: str) -> CredentialSession:
        try:
            data = await self._request(
                "POST",
                "/token",
                operation="sign_in_with_password",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except CredentialServiceUnavailableError:
            raise
        except CredentialStoreError as e:
            if e.status in (400, 401):
                raise InvalidCredentialsError(e.message) from e
            raise

        session = self._parse_session(data)
        self._save_session(session)
        logger.info("credential_sign_in", user_id=session.user.id)
        await self._notify(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[CredentialUser, CredentialSession | None]:
        data = await self._request(
            "POST",
            "/signup",
            operation="sign_up",
            json={"email": email, "password": password, "data": metadata or {}},
        )

        # Without auto-confirm the server returns the bare user
        if "access_token" not in data:
            user_data = data.get("user", data)
            try:
                user = CredentialUser.model_validate(user_data)
            except ValidationError as e:
                raise CredentialStoreError("Malformed sign-up response") from e
            logger.info("credential_sign_up", user_id=user.id, confirmed=False)
            return user, None

        session = self._parse_session(data)
        self._save_session(session)
        logger.info("credential_sign_up", user_id=session.user.id, confirmed=True)
        await self._notify(AuthChangeEvent.SIGNED_IN, session)
        return session.user, session

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        scopes: str | None = None,
        query_params: Mapping[str, str] | None = None,
    ) -> str:
        verifier, challenge = generate_pkce_pair()
        self.storage.set_item(self.verifier_key, verifier)

        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": challenge,
            "code_challenge_method": "s256",
        }
        if scopes:
            params["scopes"] = scopes
        if query_params:
            params.update(query_params)

        return f"{self.settings.auth_base_url}/authorize?{urlencode(params)}"

    async def exchange_code_for_session(self, code: str) -> CredentialSession:
        verifier = self.storage.get_item(self.verifier_key)
        if not verifier:
            raise CredentialStoreError("PKCE code verifier not found in storage", status=400)

        data = await self._request(
            "POST",
            "/token",
            operation="exchange_code_for_session",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": verifier},
        )
        self.storage.remove_item(self.verifier_key)

        session = self._parse_session(data)
        self._save_session(session)
        logger.info("credential_code_exchanged", user_id=session.user.id)
        await self._notify(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        """End the session; succeeds when no session exists."""
        try:
            session = await self.get_session()
        except TokenInvalidError:
            session = None

        if session is not None:
            try:
                await self._request(
                    "POST",
                    "/logout",
                    operation="sign_out",
                    params={"scope": "global"},
                    access_token=session.access_token,
                )
            except CredentialStoreError as e:
                if e.status not in SESSION_GONE_STATUSES:
                    raise

        self._remove_session()
        await self._notify(AuthChangeEvent.SIGNED_OUT, None)

    async def get_user(self) -> CredentialUser | None:
        session = await self.get_session()
        if session is None:
            return None

        data = await self._request(
            "GET",
            "/user",
            operation="get_user",
            access_token=session.access_token,
        )
        return CredentialUser.model_validate(data)

    async def refresh_session(self) -> CredentialSession:
        current = await self._require_session()

        try:
            data = await self._request(
                "POST",
                "/token",
                operation="refresh_session",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": current.refresh_token},
            )
        except CredentialServiceUnavailableError:
            raise
        except CredentialStoreError:
            # Refresh token revoked or reused
            self._remove_session()
            await self._notify(AuthChangeEvent.SIGNED_OUT, None)
            raise

        session = self._parse_session(data)
        self._save_session(session)
        logger.info("credential_session_refreshed", user_id=session.user.id)
        await self._notify(AuthChangeEvent.TOKEN_REFRESHED, session)
        return session

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        verifier, challenge = generate_pkce_pair()
        self.storage.set_item(self.verifier_key, verifier)

        await self._request(
            "POST",
            "/recover",
            operation="reset_password_for_email",
            params={"redirect_to": redirect_to},
            json={
                "email": email,
                "code_challenge": challenge,
                "code_challenge_method": "s256",
            },
        )

    async def update_user(
        self,
        *,
        password: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> CredentialUser:
        session = await self._require_session()

        body: dict[str, Any] = {}
        if password is not None:
            body["password"] = password
        if data is not None:
            body["data"] = data

        response = await self._request(
            "PUT",
            "/user",
            operation="update_user",
            json=body,
            access_token=session.access_token,
        )
        user = CredentialUser.model_validate(response)

        session = session.model_copy(update={"user": user})
        self._save_session(session)
        await self._notify(AuthChangeEvent.USER_UPDATED, session)
        return user
