"""
Session Context and Authentication

DESIGN DECISION: The signed-in session is an explicit object, created
once per UI session and handed by reference to everything that talks to
the backend (chat transport, storage). There is no module-level current
user.

Lifecycle:
1. Created empty at startup
2. attach() subscribes it to the auth backend's state-change events
3. refresh() on every credential change (sign in, token refresh)
4. teardown() at logout clears it and drops the subscription
"""

from typing import Any, Callable, Optional

import structlog

from brisk_insights.audit import AuditLogger
from brisk_insights.chat.errors import AuthenticationError
from brisk_insights.services.storage import BackendConnectionError, SupabaseClient


logger = structlog.get_logger(__name__)

SIGNED_OUT_EVENT = "SIGNED_OUT"


class SignInError(Exception):
    """The backend rejected the credentials."""
    pass


class SessionContext:
    """
    The current user's credential and identity.

    Listeners registered with add_listener() are called after every
    change, with the context itself.
    """

    def __init__(self):
        self.access_token: Optional[str] = None
        self.user_id: Optional[str] = None
        self.email: Optional[str] = None
        self.full_name: Optional[str] = None
        self.avatar_url: Optional[str] = None
        self._subscription = None
        self._listeners: list[Callable[["SessionContext"], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token and self.user_id)

    @property
    def is_attached(self) -> bool:
        return self._subscription is not None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or ""

    def add_listener(self, listener: Callable[["SessionContext"], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def attach(self, auth_client) -> None:
        """
        Follow the auth backend: load its current session and subscribe to
        its state changes.

        Args:
            auth_client: The backend auth API (supabase client.auth)
        """
        if self._subscription is not None:
            return
        self._subscription = auth_client.on_auth_state_change(self._on_auth_change)
        self.refresh(auth_client.get_session())

    def _on_auth_change(self, event: Any, session: Any) -> None:
        event_name = getattr(event, "value", event)
        logger.debug("auth_state_changed", auth_event=str(event_name))
        if event_name == SIGNED_OUT_EVENT:
            self.clear()
        else:
            self.refresh(session)

    def refresh(self, session: Any) -> None:
        """
        Load credential and identity from a backend session.

        A None session means signed out.
        """
        if session is None or not getattr(session, "access_token", None):
            self.clear()
            return

        user = getattr(session, "user", None)
        metadata = (getattr(user, "user_metadata", None) or {}) if user else {}
        self.set_credentials(
            access_token=session.access_token,
            user_id=str(user.id) if user else None,
            email=getattr(user, "email", None) if user else None,
            full_name=metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
        )

    def set_credentials(
        self,
        access_token: str,
        user_id: Optional[str],
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> None:
        self.access_token = access_token
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.avatar_url = avatar_url
        self._notify()

    def clear(self) -> None:
        changed = self.access_token is not None or self.user_id is not None
        self.access_token = None
        self.user_id = None
        self.email = None
        self.full_name = None
        self.avatar_url = None
        if changed:
            self._notify()

    def teardown(self) -> None:
        """Forget the user and stop following the auth backend."""
        if self._subscription is not None:
            unsubscribe = getattr(self._subscription, "unsubscribe", None)
            if unsubscribe:
                unsubscribe()
            self._subscription = None
        self.clear()

    def require_token(self) -> str:
        """
        Raises:
            AuthenticationError: Nobody is signed in
        """
        if not self.access_token:
            raise AuthenticationError("No access token in session")
        return self.access_token

    def require_user_id(self) -> str:
        """
        Raises:
            AuthenticationError: Nobody is signed in
        """
        if not self.user_id:
            raise AuthenticationError("No user in session")
        return self.user_id


class AuthService:
    """
    Email/password authentication against the backend.

    Drives the session context: sign in attaches and refreshes it,
    sign out tears it down.
    """

    def __init__(
        self,
        session: SessionContext,
        client: Optional[SupabaseClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._client = client or SupabaseClient()
        self._audit_logger = audit_logger

    async def sign_in(self, email: str, password: str) -> SessionContext:
        """
        Sign in and load the session.

        Raises:
            SignInError: Wrong credentials or the backend refused
            BackendConnectionError: The backend is not reachable/configured
        """
        auth = self._client.auth
        try:
            response = auth.sign_in_with_password(
                {"email": email.strip(), "password": password}
            )
        except BackendConnectionError:
            raise
        except Exception as e:
            logger.warning("sign_in_failed", email=email, error=str(e))
            raise SignInError(str(e))

        if response.session is None:
            raise SignInError("No session returned")

        if not self._session.is_attached:
            self._session.attach(auth)
        self._session.refresh(response.session)

        if self._audit_logger:
            await self._audit_logger.log_signed_in(
                user_id=self._session.require_user_id(),
                email=self._session.email,
            )
        return self._session

    async def sign_out(self) -> None:
        """Sign out. The local session is cleared even if the backend call fails."""
        user_id = self._session.user_id
        try:
            self._client.auth.sign_out()
        except Exception as e:
            logger.warning("sign_out_failed", error=str(e))
        finally:
            self._session.teardown()

        if self._audit_logger:
            await self._audit_logger.log_signed_out(user_id)
