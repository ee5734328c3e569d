"""Credential store: the current token pair and its durable copy."""

from __future__ import annotations

from collections.abc import Callable

from ..observability import get_logger, redact
from ..protocols import KeyValueStorage, SessionExpiredListener
from ..types import SessionTokens

logger = get_logger("device_api_client.client.credentials")

ACCESS_TOKEN_KEY = "device_access_token"
REFRESH_TOKEN_KEY = "device_refresh_token"


class CredentialStore:
    """Holds the session tokens, persists them, and announces session loss.

    The session is restored from ``storage`` at construction; an empty
    storage means the client starts unauthenticated. All mutation goes
    through ``set_tokens`` and ``clear_tokens``.
    """

    def __init__(self, *, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._session = SessionTokens(
            access_token=storage.get(ACCESS_TOKEN_KEY) or None,
            refresh_token=storage.get(REFRESH_TOKEN_KEY) or None,
        )
        self._listeners: list[SessionExpiredListener] = []

    @property
    def session(self) -> SessionTokens:
        return self._session

    @property
    def access_token(self) -> str | None:
        return self._session.access_token

    @property
    def refresh_token(self) -> str | None:
        return self._session.refresh_token

    def get_auth_header(self) -> dict[str, str] | None:
        """Return a bearer header for the current access token, if any."""
        if self._session.access_token is None:
            return None
        return {"Authorization": f"Bearer {self._session.access_token}"}

    def is_authenticated(self) -> bool:
        """True when an access token is held; the server may still reject it."""
        return self._session.access_token is not None

    def set_tokens(self, access_token: str, refresh_token: str | None = None) -> None:
        """Replace the access token and, when given, the refresh token.

        Exchanges such as a password change return only a new access token, so
        a missing ``refresh_token`` keeps the current one.
        """
        refresh = refresh_token or self._session.refresh_token
        self._session = SessionTokens(access_token=access_token, refresh_token=refresh)
        self._storage.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token:
            self._storage.set(REFRESH_TOKEN_KEY, refresh_token)
        logger.debug("Stored access token %s", redact(access_token))

    def clear_tokens(self) -> None:
        """Wipe the session everywhere and notify session-expired listeners."""
        self._session = SessionTokens()
        self._storage.remove(ACCESS_TOKEN_KEY)
        self._storage.remove(REFRESH_TOKEN_KEY)
        logger.info("Session cleared")
        self._emit_session_expired()

    def subscribe_session_expired(self, listener: SessionExpiredListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit_session_expired(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Session-expired listener %r failed", listener)
