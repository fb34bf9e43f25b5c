"""Tests for SessionContext."""

import asyncio

import pytest

from flip_platform.auth.credentials import AuthChangeEvent
from flip_platform.auth.schemas import ProfileUpdate
from flip_platform.auth.service import AuthService
from flip_platform.auth.session_context import AuthState, SessionContext, SessionStatus
from flip_platform.core.exceptions import AuthOperationError
from tests.fakes import FakeAuthBackend, FakeCredentialStore

EMAIL = "erik@example.se"
PASSWORD = "Secret123"


class TestLifecycle:
    """Tests for mounting and unmounting."""

    def test_initial_state(self, auth_service: AuthService) -> None:
        """Test a new context is uninitialized and loading."""
        ctx = SessionContext(auth_service)

        assert ctx.status is SessionStatus.UNINITIALIZED
        assert ctx.state == AuthState()
        assert ctx.state.is_loading is True

    @pytest.mark.asyncio
    async def test_mount_without_session(self, auth_service: AuthService) -> None:
        """Test mounting with no stored session settles as anonymous."""
        async with SessionContext(auth_service) as ctx:
            assert ctx.status is SessionStatus.ANONYMOUS
            assert ctx.state == AuthState.anonymous()

    @pytest.mark.asyncio
    async def test_mount_with_stored_session(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test an existing session is restored with its profile."""
        auth_backend.register(EMAIL, PASSWORD)
        await credentials.sign_in_with_password(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            assert ctx.status is SessionStatus.AUTHENTICATED
            assert ctx.state.user.email == EMAIL
            assert ctx.state.is_loading is False

    @pytest.mark.asyncio
    async def test_events_ignored_after_unmount(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test store events no longer reach an unmounted context."""
        auth_backend.register(EMAIL, PASSWORD)
        ctx = SessionContext(auth_service)
        await ctx.mount()
        ctx.unmount()

        await credentials.sign_in_with_password(EMAIL, PASSWORD)
        await ctx._on_auth_change(AuthChangeEvent.SIGNED_IN, await credentials.get_session())

        assert ctx.state == AuthState.anonymous()

    @pytest.mark.asyncio
    async def test_refresh_after_unmount_is_silent(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test an unmounted context neither changes state nor notifies listeners."""
        auth_backend.register(EMAIL, PASSWORD)
        states: list[AuthState] = []
        ctx = SessionContext(auth_service)
        await ctx.mount()
        ctx.subscribe(states.append)
        ctx.unmount()

        await credentials.sign_in_with_password(EMAIL, PASSWORD)
        await ctx.refresh_user()
        ctx._set_loading(True)

        assert states == []
        assert ctx.state == AuthState.anonymous()


def gate(target, name: str) -> tuple[asyncio.Event, asyncio.Event]:
    """Make ``target.name`` wait for a release; returns (entered, release)."""
    entered = asyncio.Event()
    release = asyncio.Event()
    original = getattr(target, name)

    async def gated(*args, **kwargs):
        result = await original(*args, **kwargs)
        entered.set()
        await release.wait()
        return result

    setattr(target, name, gated)
    return entered, release


class TestOrdering:
    """Tests that the newest store event decides the state."""

    @pytest.mark.asyncio
    async def test_sign_out_during_initial_profile_lookup(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test a slow initial lookup does not overwrite a later sign-out."""
        auth_backend.register(EMAIL, PASSWORD)
        await credentials.sign_in_with_password(EMAIL, PASSWORD)
        entered, release = gate(auth_service, "resolve_user")
        ctx = SessionContext(auth_service)

        mounting = asyncio.create_task(ctx.mount())
        await entered.wait()
        await credentials.sign_out()
        release.set()
        await mounting

        assert await credentials.get_session() is None
        assert ctx.state == AuthState.anonymous()
        assert ctx.status is SessionStatus.ANONYMOUS

    @pytest.mark.asyncio
    async def test_sign_out_during_initial_session_read(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test the initial read is discarded once an event has been applied."""
        auth_backend.register(EMAIL, PASSWORD)
        await credentials.sign_in_with_password(EMAIL, PASSWORD)
        entered, release = gate(auth_service, "get_current_session")
        ctx = SessionContext(auth_service)

        mounting = asyncio.create_task(ctx.mount())
        await entered.wait()
        await credentials.sign_out()
        release.set()
        await mounting

        assert ctx.state == AuthState.anonymous()

    @pytest.mark.asyncio
    async def test_slow_event_loses_to_newer_event(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
        credentials: FakeCredentialStore,
    ) -> None:
        """Test an earlier event finishing late is dropped."""
        auth_backend.register(EMAIL, PASSWORD)
        ctx = SessionContext(auth_service)
        await ctx.mount()
        session = await credentials.sign_in_with_password(EMAIL, PASSWORD)
        entered, release = gate(auth_service, "resolve_user")

        signing_in = asyncio.create_task(
            ctx._on_auth_change(AuthChangeEvent.SIGNED_IN, session)
        )
        await entered.wait()
        await ctx._on_auth_change(AuthChangeEvent.SIGNED_OUT, None)
        release.set()
        await signing_in

        assert ctx.state == AuthState.anonymous()
        ctx.unmount()


class TestSubscribe:
    """Tests for state listeners."""

    @pytest.mark.asyncio
    async def test_listener_sees_each_replacement(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test listeners get every state, ending authenticated and settled."""
        auth_backend.register(EMAIL, PASSWORD)
        states: list[AuthState] = []

        async with SessionContext(auth_service) as ctx:
            ctx.subscribe(states.append)
            await ctx.login(EMAIL, PASSWORD)

        assert states[0].is_loading is True
        assert states[-1].is_authenticated is True
        assert states[-1].is_loading is False

    @pytest.mark.asyncio
    async def test_unsubscribe(self, auth_service: AuthService) -> None:
        """Test a removed listener is not called."""
        states: list[AuthState] = []
        ctx = SessionContext(auth_service)
        unsubscribe = ctx.subscribe(states.append)
        unsubscribe()

        await ctx.mount()

        assert states == []


class TestOperations:
    """Tests for context operations."""

    @pytest.mark.asyncio
    async def test_login(self, auth_service: AuthService, auth_backend: FakeAuthBackend) -> None:
        """Test login authenticates the context."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            session = await ctx.login(EMAIL, PASSWORD)

            assert session.user.email == EMAIL
            assert ctx.status is SessionStatus.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_login_failure_raises(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test a failed login raises and clears loading."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="Invalid login credentials"):
                await ctx.login(EMAIL, "Wrong1234")

            assert ctx.state.is_loading is False
            assert ctx.state.is_authenticated is False

    @pytest.mark.asyncio
    async def test_logout(self, auth_service: AuthService, auth_backend: FakeAuthBackend) -> None:
        """Test logout returns the context to anonymous."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            await ctx.logout()

            assert ctx.state == AuthState.anonymous()

    @pytest.mark.asyncio
    async def test_register_rejects_invalid_email(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test invalid emails never reach the credential store."""
        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="valid email"):
                await ctx.register("not-an-email", PASSWORD)

        assert auth_backend.accounts == {}

    @pytest.mark.asyncio
    async def test_register_rejects_weak_password(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test weak passwords never reach the credential store."""
        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="at least 8 characters"):
                await ctx.register(EMAIL, "weak")

        assert auth_backend.accounts == {}

    @pytest.mark.asyncio
    async def test_register(self, auth_service: AuthService) -> None:
        """Test registration returns the new user and settles loading."""
        async with SessionContext(auth_service) as ctx:
            user = await ctx.register(EMAIL, PASSWORD, first_name="Erik", agreed_to_terms=True)

            assert user.first_name == "Erik"
            assert ctx.state.is_loading is False

    @pytest.mark.asyncio
    async def test_register_requires_terms(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test registration without agreeing to the terms is refused."""
        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="agree to the terms"):
                await ctx.register(EMAIL, PASSWORD)

        assert auth_backend.accounts == {}

    @pytest.mark.asyncio
    async def test_register_requires_matching_confirmation(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test a mismatched confirmation never reaches the credential store."""
        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="Passwords don't match"):
                await ctx.register(
                    EMAIL,
                    PASSWORD,
                    confirm_password="Secret124",
                    agreed_to_terms=True,
                )

        assert auth_backend.accounts == {}

    @pytest.mark.asyncio
    async def test_reset_password_rejects_invalid_email(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test reset requests are validated before being sent."""
        async with SessionContext(auth_service) as ctx:
            with pytest.raises(AuthOperationError, match="valid email"):
                await ctx.reset_password("erik@")

        assert auth_backend.reset_requests == []

    @pytest.mark.asyncio
    async def test_reset_password(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test a valid address is forwarded with the recovery redirect."""
        async with SessionContext(auth_service) as ctx:
            await ctx.reset_password(EMAIL)

        assert auth_backend.reset_requests[0][0] == EMAIL

    @pytest.mark.asyncio
    async def test_update_password_requires_matching_confirmation(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test the recovery form checks the confirmation."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            with pytest.raises(AuthOperationError, match="Passwords don't match"):
                await ctx.update_password("NewSecret123", "NewSecret124")

        assert auth_backend.accounts[EMAIL][0] == PASSWORD

    @pytest.mark.asyncio
    async def test_change_password_rejects_weak_password(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test the new password must meet the strength rules."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            with pytest.raises(AuthOperationError):
                await ctx.change_password(PASSWORD, "weak")

        assert auth_backend.accounts[EMAIL][0] == PASSWORD

    @pytest.mark.asyncio
    async def test_update_profile_refreshes_user(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test the state carries the updated profile."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            await ctx.update_profile(ProfileUpdate(first_name="Erik", location_city="Lund"))

            assert ctx.state.user.first_name == "Erik"
            assert ctx.state.user.location_city == "Lund"
            assert ctx.state.is_authenticated is True

    @pytest.mark.asyncio
    async def test_delete_account(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test account deletion ends in the anonymous state."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            await ctx.delete_account(PASSWORD)

            assert ctx.state == AuthState.anonymous()

    @pytest.mark.asyncio
    async def test_delete_account_wrong_password(
        self,
        auth_service: AuthService,
        auth_backend: FakeAuthBackend,
    ) -> None:
        """Test the error message surfaces and the session stays."""
        auth_backend.register(EMAIL, PASSWORD)

        async with SessionContext(auth_service) as ctx:
            await ctx.login(EMAIL, PASSWORD)
            with pytest.raises(AuthOperationError, match="Password is incorrect"):
                await ctx.delete_account("Wrong1234")

            assert ctx.state.is_authenticated is True
            assert ctx.state.is_loading is False
