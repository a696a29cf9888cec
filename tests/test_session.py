"""
Tests for the session context and sign in/out.

The auth backend is a small fake with the same surface as the Supabase
auth client.
"""

from types import SimpleNamespace

import pytest

from brisk_insights.chat.errors import AuthenticationError
from brisk_insights.models.audit import AuditEventType
from brisk_insights.session import AuthService, SessionContext, SignInError


def backend_session(token="tok", user_id="u-1", email="ana@example.com", **metadata):
    user = SimpleNamespace(id=user_id, email=email, user_metadata=metadata)
    return SimpleNamespace(access_token=token, user=user)


class FakeSubscription:
    def __init__(self):
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True


class FakeAuth:
    def __init__(self, current=None, sign_in_result=None, sign_in_error=None):
        self.current = current
        self.callback = None
        self.subscription = FakeSubscription()
        self.sign_in_result = sign_in_result
        self.sign_in_error = sign_in_error
        self.signed_out = False

    def on_auth_state_change(self, callback):
        self.callback = callback
        return self.subscription

    def get_session(self):
        return self.current

    def sign_in_with_password(self, credentials):
        if self.sign_in_error:
            raise self.sign_in_error
        return SimpleNamespace(session=self.sign_in_result)

    def sign_out(self):
        self.signed_out = True


class FakeClient:
    def __init__(self, auth):
        self.auth = auth


class TestSessionContext:

    def test_starts_signed_out(self):
        ctx = SessionContext()
        assert not ctx.is_authenticated
        with pytest.raises(AuthenticationError):
            ctx.require_token()
        with pytest.raises(AuthenticationError):
            ctx.require_user_id()

    def test_refresh_reads_backend_session(self):
        ctx = SessionContext()
        ctx.refresh(backend_session(full_name="Ana", avatar_url="https://x/a.png"))

        assert ctx.is_authenticated
        assert ctx.require_token() == "tok"
        assert ctx.user_id == "u-1"
        assert ctx.display_name == "Ana"
        assert ctx.avatar_url == "https://x/a.png"

    def test_display_name_falls_back_to_email(self):
        ctx = SessionContext()
        ctx.refresh(backend_session())
        assert ctx.display_name == "ana@example.com"

    def test_refresh_with_none_clears(self, session):
        session.refresh(None)
        assert not session.is_authenticated

    def test_attach_follows_auth_events(self):
        auth = FakeAuth(current=backend_session(token="first"))
        ctx = SessionContext()

        ctx.attach(auth)
        assert ctx.access_token == "first"
        assert ctx.is_attached

        auth.callback("TOKEN_REFRESHED", backend_session(token="second"))
        assert ctx.access_token == "second"

        auth.callback("SIGNED_OUT", None)
        assert not ctx.is_authenticated

    def test_attach_accepts_enum_auth_events(self):
        """The backend passes events as enum members, not strings."""
        auth = FakeAuth(current=backend_session(token="first"))
        ctx = SessionContext()
        ctx.attach(auth)

        auth.callback(SimpleNamespace(value="TOKEN_REFRESHED"), backend_session(token="second"))
        assert ctx.access_token == "second"

        auth.callback(SimpleNamespace(value="SIGNED_OUT"), backend_session(token="second"))
        assert not ctx.is_authenticated

    def test_attach_is_idempotent(self):
        auth = FakeAuth()
        ctx = SessionContext()
        ctx.attach(auth)
        first = auth.callback
        auth.callback = None

        ctx.attach(auth)

        assert auth.callback is None
        assert first is not None

    def test_teardown_unsubscribes(self):
        auth = FakeAuth(current=backend_session())
        ctx = SessionContext()
        ctx.attach(auth)

        ctx.teardown()

        assert auth.subscription.unsubscribed
        assert not ctx.is_attached
        assert not ctx.is_authenticated

    def test_listeners_see_changes(self):
        seen = []
        ctx = SessionContext()
        ctx.add_listener(lambda c: seen.append(c.access_token))

        ctx.set_credentials("a", "u")
        ctx.clear()
        # Clearing an empty session is not a change
        ctx.clear()

        assert seen == ["a", None]


class TestAuthService:

    @pytest.mark.asyncio
    async def test_sign_in_loads_session_and_audits(self, audit_logger, audit_storage):
        auth = FakeAuth(sign_in_result=backend_session(full_name="Ana"))
        ctx = SessionContext()
        service = AuthService(ctx, FakeClient(auth), audit_logger)

        result = await service.sign_in(" ana@example.com ", "secreto")

        assert result is ctx
        assert ctx.is_authenticated
        assert ctx.is_attached
        [event] = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.USER_SIGNED_IN

    @pytest.mark.asyncio
    async def test_rejected_credentials(self):
        auth = FakeAuth(sign_in_error=RuntimeError("Invalid login credentials"))
        ctx = SessionContext()
        service = AuthService(ctx, FakeClient(auth))

        with pytest.raises(SignInError):
            await service.sign_in("ana@example.com", "mal")

        assert not ctx.is_authenticated

    @pytest.mark.asyncio
    async def test_missing_session_is_rejected(self):
        auth = FakeAuth(sign_in_result=None)
        service = AuthService(SessionContext(), FakeClient(auth))

        with pytest.raises(SignInError):
            await service.sign_in("ana@example.com", "x")

    @pytest.mark.asyncio
    async def test_sign_out_tears_down(self, audit_logger, audit_storage):
        auth = FakeAuth(sign_in_result=backend_session())
        ctx = SessionContext()
        service = AuthService(ctx, FakeClient(auth), audit_logger)
        await service.sign_in("ana@example.com", "x")

        await service.sign_out()

        assert auth.signed_out
        assert not ctx.is_authenticated
        assert auth.subscription.unsubscribed
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.USER_SIGNED_OUT

    @pytest.mark.asyncio
    async def test_sign_out_clears_even_if_backend_fails(self, session):
        class BrokenAuth(FakeAuth):
            def sign_out(self):
                raise RuntimeError("offline")

        service = AuthService(session, FakeClient(BrokenAuth()))

        await service.sign_out()

        assert not session.is_authenticated
