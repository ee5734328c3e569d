"""Single-flight access-token refresh."""

from __future__ import annotations

import asyncio

from ..infrastructure.io.http import response_details
from ..infrastructure.io.validation import IncomingDataError, parse_token_pair
from ..observability import get_logger
from ..protocols import HttpSession
from ..types import HttpRequest
from .credentials import CredentialStore

logger = get_logger("device_api_client.client.refresh")

REFRESH_PATH = "/auth/refresh"


class RefreshCoordinator:
    """Ensures at most one refresh exchange is in flight.

    Concurrent callers that discover an expired token all await the same
    pending task. The slot is cleared when that task settles, before any
    awaiting caller resumes, so the next refresh can only start afterwards.
    """

    def __init__(
        self,
        *,
        session: HttpSession,
        credentials: CredentialStore,
        api_url: str,
        timeout_seconds: float,
    ) -> None:
        self._session = session
        self._credentials = credentials
        self._url = f"{api_url}{REFRESH_PATH}"
        self._timeout_seconds = timeout_seconds
        self._pending: asyncio.Task[bool] | None = None

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    async def refresh(self) -> bool:
        """Exchange the refresh token for new credentials.

        Returns False without any request when no refresh token is held, and
        False after clearing the session when the exchange fails in any way.
        """
        if self._pending is None:
            if self._credentials.refresh_token is None:
                return False
            task = asyncio.create_task(self._exchange())
            task.add_done_callback(self._clear_pending)
            self._pending = task
        # Shielded so one joiner being cancelled does not cancel the others.
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Task[bool]) -> None:
        if self._pending is task:
            self._pending = None

    async def _exchange(self) -> bool:
        refresh_token = self._credentials.refresh_token
        if refresh_token is None:
            return False
        request = HttpRequest(
            method="POST",
            url=self._url,
            headers={"Content-Type": "application/json"},
            json_body={"refresh_token": refresh_token},
            timeout_seconds=self._timeout_seconds,
        )
        logger.info("Refreshing access token")
        try:
            response = await asyncio.to_thread(self._session.send, request)
        except Exception as exc:
            logger.warning("Token refresh failed: %s: %s", type(exc).__name__, exc)
            self._credentials.clear_tokens()
            return False

        if not response.ok:
            logger.warning("Token refresh rejected (%s)", response_details(response))
            self._credentials.clear_tokens()
            return False

        try:
            access, refresh = parse_token_pair(response.content)
        except IncomingDataError:
            logger.warning("Token refresh returned a malformed body")
            self._credentials.clear_tokens()
            return False
        if access is None:
            logger.warning("Token refresh response had no access token")
            self._credentials.clear_tokens()
            return False

        self._credentials.set_tokens(access, refresh)
        logger.info("Access token refreshed")
        return True
