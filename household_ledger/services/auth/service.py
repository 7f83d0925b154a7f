"""
Authentication Service

Authentication is delegated to Supabase auth. The application only needs
five things from it: sign in, sign up, sign out, the current session and a
notification when the session changes.

The Supabase implementation shares its SDK client with the storages, so
once a user signs in, table calls run under that user's token and the
backend's row-level security applies.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import structlog

from household_ledger.models.finance import Session
from household_ledger.services.storage.memory import InMemoryDatabase
from household_ledger.services.storage.supabase_store import SupabaseClient


logger = structlog.get_logger(__name__)

SessionListener = Callable[[Optional[Session]], None]


class AuthError(Exception):
    """Sign in, sign up or sign out failed."""
    pass


class AuthServiceInterface(ABC):
    """Abstract interface for the auth backend."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            AuthError: On bad credentials or a backend failure
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """
        Create an account.

        Returns:
            The new session, or None when the backend requires the email
            address to be confirmed first
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        """The current session, or None if nobody is signed in."""
        pass

    @abstractmethod
    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session changes.

        Returns:
            A function that unregisters the listener
        """
        pass


def _session_from_sdk(sdk_session: Any) -> Optional[Session]:
    """Convert an SDK session object into our model."""
    if sdk_session is None or getattr(sdk_session, "user", None) is None:
        return None
    return Session(
        user_id=sdk_session.user.id,
        email=sdk_session.user.email or "",
        access_token=sdk_session.access_token or "",
    )


class SupabaseAuthService(AuthServiceInterface):
    """Auth backed by Supabase (email + password)."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def sign_in(self, email: str, password: str) -> Session:
        try:
            response = self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise AuthError(str(e))

        session = _session_from_sdk(response.session)
        if session is None:
            raise AuthError("Sign in did not return a session")
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        try:
            response = self._client.auth.sign_up(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise AuthError(str(e))

        if response.user is None:
            raise AuthError("Sign up did not create a user")
        return _session_from_sdk(response.session)

    async def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except Exception as e:
            raise AuthError(str(e))

    async def get_session(self) -> Optional[Session]:
        try:
            return _session_from_sdk(self._client.auth.get_session())
        except Exception as e:
            # An expired or unreadable stored session means "signed out"
            logger.warning("session_lookup_failed", error=str(e))
            return None

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        def handle(event: str, sdk_session: Any) -> None:
            logger.info("auth_state_changed", auth_event=str(event))
            listener(_session_from_sdk(sdk_session))

        subscription = self._client.auth.on_auth_state_change(handle)
        return subscription.unsubscribe


class InMemoryAuthService(AuthServiceInterface):
    """
    Auth on a dict of email -> password. Used by the tests and demo sessions.

    User ids are derived from the registration order. When a database is
    given, registering also creates the user's profile in ``family_id``,
    the way the hosted backend does on sign up.
    """

    def __init__(
        self,
        db: Optional[InMemoryDatabase] = None,
        family_id: str = "family-1",
        require_confirmation: bool = False,
    ):
        self._accounts: dict[str, tuple[str, str]] = {}
        self._session: Optional[Session] = None
        self._listeners: list[SessionListener] = []
        self._db = db
        self._family_id = family_id
        self._require_confirmation = require_confirmation

    def register(self, email: str, password: str, user_id: Optional[str] = None) -> str:
        user_id = user_id or f"user-{len(self._accounts) + 1}"
        self._accounts[email.lower()] = (password, user_id)
        if self._db is not None:
            self._db.add_profile(user_id, None, self._family_id)
        return user_id

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    async def sign_in(self, email: str, password: str) -> Session:
        account = self._accounts.get(email.lower())
        if account is None or account[0] != password:
            raise AuthError("Invalid login credentials")
        session = Session(user_id=account[1], email=email, access_token=f"token-{account[1]}")
        self._set_session(session)
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        if email.lower() in self._accounts:
            raise AuthError("User already registered")
        if len(password) < 6:
            raise AuthError("Password should be at least 6 characters")
        user_id = self.register(email, password)
        if self._require_confirmation:
            return None
        session = Session(user_id=user_id, email=email, access_token=f"token-{user_id}")
        self._set_session(session)
        return session

    async def sign_out(self) -> None:
        self._set_session(None)

    async def get_session(self) -> Optional[Session]:
        return self._session

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
