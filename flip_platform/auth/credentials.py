"""Credential store contract, session types, and session storages.

The credential store owns passwords, tokens, and OAuth exchanges. The rest
of the application only sees the types declared here.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import Response

# =============================================================================
# Session Types
# =============================================================================


class CredentialUser(BaseModel):
    """Identity record held by the credential store."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    app_metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class CredentialSession(BaseModel):
    """Token pair plus the identity it was issued for."""

    access_token: str
    refresh_token: str
    expires_at: int  # unix seconds
    token_type: str = "bearer"
    user: CredentialUser

    model_config = ConfigDict(extra="ignore")

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    def seconds_until_expiry(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return self.expires_at - now.timestamp()


class AuthChangeEvent(str, Enum):
    """Session state change notifications."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


AuthStateCallback = Callable[
    [AuthChangeEvent, CredentialSession | None], Awaitable[None] | None
]


@dataclass
class Subscription:
    """Handle returned by ``on_auth_state_change``."""

    id: int
    unsubscribe: Callable[[], None]


# =============================================================================
# Credential Store Contract
# =============================================================================


class CredentialStore(Protocol):
    """External identity service.

    Every method raises ``CredentialStoreError`` (or a subclass) on failure.
    """

    async def sign_in_with_password(self, email: str, password: str) -> CredentialSession: ...

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[CredentialUser, CredentialSession | None]: ...

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        scopes: str | None = None,
        query_params: Mapping[str, str] | None = None,
    ) -> str: ...

    async def sign_out(self) -> None: ...

    async def get_user(self) -> CredentialUser | None: ...

    async def get_session(self) -> CredentialSession | None: ...

    async def refresh_session(self) -> CredentialSession: ...

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None: ...

    async def update_user(
        self,
        *,
        password: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> CredentialUser: ...

    async def exchange_code_for_session(self, code: str) -> CredentialSession: ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription: ...


# Builds a store bound to one request's (or one client's) session storage
CredentialStoreFactory = Callable[["SessionStorage"], CredentialStore]


# =============================================================================
# Session Storage
# =============================================================================


class SessionStorage(Protocol):
    """Key/value persistence for the serialized session."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage for long-lived clients and tests."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class CookieStorage:
    """Storage over one request's cookies.

    Writes are recorded and replayed onto the outgoing response with
    ``apply``; reads see the writes made during the request.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        *,
        secure: bool = False,
        max_age: int = 60 * 60 * 24 * 400,
    ) -> None:
        self._cookies: dict[str, str] = dict(cookies)
        self._pending: dict[str, str | None] = {}
        self.secure = secure
        self.max_age = max_age

    def get_item(self, key: str) -> str | None:
        return self._cookies.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._cookies[key] = value
        self._pending[key] = value

    def remove_item(self, key: str) -> None:
        self._cookies.pop(key, None)
        self._pending[key] = None

    @property
    def has_changes(self) -> bool:
        return bool(self._pending)

    def apply(self, response: Response) -> None:
        """Write pending cookie changes onto ``response``."""
        for name, value in self._pending.items():
            if value is None:
                response.delete_cookie(name, path="/")
            else:
                response.set_cookie(
                    name,
                    value,
                    max_age=self.max_age,
                    path="/",
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )
