"""Session context: reactive auth state for one client.

Holds a single immutable ``AuthState`` that is replaced wholesale on every
change, and mirrors credential store events into it. Listeners registered
with ``subscribe`` are called synchronously after each replacement.

Usage:
    async with SessionContext(auth_service) as ctx:
        ctx.subscribe(render)
        await ctx.login(email, password)
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from types import TracebackType
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from flip_platform.auth.credentials import (
    AuthChangeEvent,
    CredentialSession,
    CredentialStore,
    Subscription,
)
from flip_platform.auth.result import AuthResult
from flip_platform.auth.schemas import (
    AuthSession,
    AuthUser,
    ChangePasswordForm,
    ForgotPasswordForm,
    ProfileUpdate,
    RegisterForm,
    ResetPasswordForm,
    SignUpData,
    form_error_message,
)
from flip_platform.auth.service import AuthService
from flip_platform.core.exceptions import AuthOperationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=BaseModel)

StateListener = Callable[["AuthState"], None]


def _validate(form_class: type[F], **values: Any) -> F:
    """Build ``form_class`` or raise its first error as ``AuthOperationError``."""
    try:
        return form_class(**values)
    except ValidationError as e:
        raise AuthOperationError(form_error_message(e)) from e


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class AuthState:
    """Snapshot of the client's auth state. Never mutated in place."""

    user: AuthUser | None = None
    session: CredentialSession | None = None
    is_loading: bool = True
    is_authenticated: bool = False

    @classmethod
    def anonymous(cls) -> "AuthState":
        return cls(user=None, session=None, is_loading=False, is_authenticated=False)

    @classmethod
    def signed_in(cls, user: AuthUser | None, session: CredentialSession) -> "AuthState":
        return cls(
            user=user,
            session=session,
            is_loading=False,
            is_authenticated=user is not None,
        )


class SessionContext:
    """Auth state holder synchronized to credential store events."""

    def __init__(
        self,
        auth_service: AuthService,
        credentials: CredentialStore | None = None,
    ) -> None:
        self.auth_service = auth_service
        self.credentials = credentials or auth_service.credentials
        self._state = AuthState()
        self._listeners: list[StateListener] = []
        self._subscription: Subscription | None = None
        self._mounted = False
        self._started = False
        self._initialized = False
        self._generation = 0
        self._events_applied = 0

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        if not self._started:
            return SessionStatus.UNINITIALIZED
        if not self._initialized:
            return SessionStatus.LOADING
        if self._state.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.ANONYMOUS

    def _replace_state(self, state: AuthState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _set_loading(self, is_loading: bool) -> None:
        if self._mounted:
            self._replace_state(replace(self._state, is_loading=is_loading))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def mount(self) -> None:
        """Subscribe to store events and load the current session."""
        if self._mounted:
            return
        self._mounted = True
        self._started = True
        self._replace_state(AuthState())

        self._subscription = self.credentials.on_auth_state_change(self._on_auth_change)

        events_before = self._events_applied
        session = await self.auth_service.get_current_session()
        # A store event during the fetch is newer than this read
        if self._events_applied == events_before:
            await self._apply_session(session, initial=True)
        self._initialized = True

    def unmount(self) -> None:
        self._mounted = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def __aenter__(self) -> "SessionContext":
        await self.mount()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.unmount()

    async def _on_auth_change(
        self,
        event: AuthChangeEvent,
        session: CredentialSession | None,
    ) -> None:
        if not self._mounted:
            return
        logger.debug("session_auth_event", auth_event=event.value)
        self._events_applied += 1
        await self._apply_session(session)
        self._initialized = True

    async def _apply_session(
        self,
        session: CredentialSession | None,
        initial: bool = False,
    ) -> None:
        """Replace state from ``session`` unless a newer apply has started."""
        self._generation += 1
        generation = self._generation

        if session is None:
            state = AuthState.anonymous()
        else:
            user = await self.auth_service.resolve_user(session.user)
            state = AuthState.signed_in(user, session)

        # Lookups may finish after unmount or after a newer event
        if not self._mounted or generation != self._generation:
            logger.debug("session_stale_state_dropped", initial=initial)
            return
        self._replace_state(state)

    # ==========================================================================
    # Operations
    # ==========================================================================

    async def _run(self, call: Awaitable[AuthResult[T]], default_message: str) -> T | None:
        """Await ``call`` with loading set, raising on failure.

        On success the store event owns the state change; loading is only
        settled here when no event arrived.
        """
        self._set_loading(True)
        try:
            result = await call
            data = result.unwrap(default_message)
        except Exception:
            self._set_loading(False)
            raise

        if self._state.is_loading:
            self._set_loading(False)
        return data

    async def login(self, email: str, password: str) -> AuthSession | None:
        return await self._run(self.auth_service.sign_in(email, password), "Login failed")

    async def logout(self) -> None:
        await self._run(self.auth_service.sign_out(), "Logout failed")

    async def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        *,
        confirm_password: str | None = None,
        agreed_to_terms: bool = False,
    ) -> AuthUser | None:
        """Validate the registration form, then sign up.

        ``confirm_password`` defaults to ``password`` for callers without a
        confirmation field.
        """
        form = _validate(
            RegisterForm,
            email=email,
            password=password,
            confirm_password=password if confirm_password is None else confirm_password,
            agreed_to_terms=agreed_to_terms,
        )

        data = SignUpData(
            email=form.email,
            password=form.password,
            first_name=first_name or None,
            last_name=last_name or None,
        )
        return await self._run(self.auth_service.sign_up(data), "Registration failed")

    async def reset_password(self, email: str) -> None:
        form = _validate(ForgotPasswordForm, email=email)
        await self._run(self.auth_service.reset_password(form.email), "Password reset failed")

    async def update_password(self, new_password: str, confirm_password: str | None = None) -> None:
        form = _validate(
            ResetPasswordForm,
            password=new_password,
            confirm_password=new_password if confirm_password is None else confirm_password,
        )
        await self._run(
            self.auth_service.update_password(form.password),
            "Password update failed",
        )

    async def change_password(
        self,
        current_password: str,
        new_password: str,
        confirm_new_password: str | None = None,
    ) -> None:
        form = _validate(
            ChangePasswordForm,
            current_password=current_password,
            new_password=new_password,
            confirm_new_password=(
                new_password if confirm_new_password is None else confirm_new_password
            ),
        )
        await self._run(
            self.auth_service.change_password(form.current_password, form.new_password),
            "Password change failed",
        )

    async def update_profile(self, updates: ProfileUpdate) -> AuthUser | None:
        user = await self._run(
            self.auth_service.update_profile(updates),
            "Profile update failed",
        )
        await self.refresh_user()
        return user

    async def delete_account(self, current_password: str) -> None:
        await self._run(
            self.auth_service.delete_account(current_password),
            "Account deletion failed",
        )

    async def refresh_user(self) -> None:
        """Re-read user and session from the stores."""
        generation = self._generation
        user = await self.auth_service.get_current_user()
        session = await self.auth_service.get_current_session()
        if not self._mounted or generation != self._generation:
            return
        self._replace_state(
            replace(
                self._state,
                user=user,
                session=session,
                is_authenticated=user is not None,
            )
        )
