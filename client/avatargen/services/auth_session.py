"""Supabase auth helpers exposing the current session to the upload pipeline."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from supabase import Client, ClientOptions, create_client

from ..config import Settings
from ..errors import SessionRequiredError

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional["Session"]], None]


@dataclass(frozen=True, slots=True)
class Session:
    """Read-only identity used to scope storage paths."""

    user_id: str
    email: str = ""

    @classmethod
    def from_supabase(cls, raw: Any) -> Optional["Session"]:
        """Convert a gotrue session (or ``None``) into our lightweight view."""

        if raw is None:
            return None
        user = getattr(raw, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            return None
        return cls(user_id=str(user_id), email=getattr(user, "email", None) or "")


def create_supabase_client(settings: Settings) -> Client:
    """Build the shared Supabase client with an explicit storage timeout."""

    if not settings.supabase_configured:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    options = ClientOptions(storage_client_timeout=settings.storage_timeout)
    return create_client(settings.supabase_url, settings.supabase_anon_key, options=options)


class SessionContext:
    """Thin wrapper around ``client.auth`` tracking the authenticated session."""

    def __init__(self, client: Client) -> None:
        self._client = client
        self._session: Optional[Session] = None
        self._loaded = False

    def current(self) -> Optional[Session]:
        """Return the cached session, querying the provider on first use."""

        if not self._loaded:
            self._session = Session.from_supabase(self._client.auth.get_session())
            self._loaded = True
        return self._session

    def require(self) -> Session:
        session = self.current()
        if session is None:
            raise SessionRequiredError()
        return session

    @contextmanager
    def subscribe(self, listener: Optional[SessionListener] = None) -> Iterator[None]:
        """Track login/logout/refresh events for the lifetime of the ``with`` block."""

        def _on_change(event: Any, raw_session: Any) -> None:
            self._session = Session.from_supabase(raw_session)
            self._loaded = True
            logger.info("Auth state changed (%s); signed in=%s", event, self._session is not None)
            if listener is not None:
                listener(self._session)

        subscription = self._client.auth.on_auth_state_change(_on_change)
        try:
            yield
        finally:
            subscription.unsubscribe()
            logger.debug("Auth state subscription released")

    def sign_in(self, email: str, password: str) -> Session:
        """Sign in with email/password and cache the resulting session."""

        response = self._client.auth.sign_in_with_password({"email": email, "password": password})
        session = Session.from_supabase(getattr(response, "session", None))
        if session is None:
            raise SessionRequiredError("Sign-in did not return a session.")
        self._session = session
        self._loaded = True
        return session

    def sign_out(self) -> None:
        self._client.auth.sign_out()
        self._session = None
        self._loaded = True
