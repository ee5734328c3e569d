"""Request transport: one authenticated HTTP call with transparent re-auth."""

from __future__ import annotations

from ..cancellation import run_cancellable
from ..infrastructure.io.http import send_async
from ..observability import get_logger
from ..protocols import HttpSession
from ..types import CANCELLED, Cancelled, HttpRequest, HttpResponse, RequestAttempt
from .credentials import CredentialStore
from .refresh import RefreshCoordinator

logger = get_logger("device_api_client.client.transport")

_BASE_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class RequestTransport:
    """Sends a ``RequestAttempt`` with the current credentials attached.

    A 401 triggers one refresh (shared with any concurrent callers) and one
    reissue of the identical attempt with rebuilt headers. The reissue is
    returned as-is, so a second 401 reaches the caller instead of looping.
    """

    def __init__(
        self,
        *,
        session: HttpSession,
        credentials: CredentialStore,
        refresher: RefreshCoordinator,
        api_url: str,
        timeout_seconds: float,
    ) -> None:
        self._session = session
        self._credentials = credentials
        self._refresher = refresher
        self._api_url = api_url
        self._timeout_seconds = timeout_seconds

    async def send(
        self,
        attempt: RequestAttempt,
        *,
        authenticate: bool = True,
        timeout_seconds: float | None = None,
    ) -> HttpResponse | Cancelled:
        """Issue ``attempt``; ``CANCELLED`` when its signal fires first."""
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        if not authenticate:
            return await self._dispatch(attempt, self._build_headers(attempt, None), timeout)

        sent_with = self._credentials.access_token
        response = await self._dispatch(
            attempt, self._build_headers(attempt, self._credentials.get_auth_header()), timeout
        )
        if response is CANCELLED:
            return CANCELLED
        if response.status_code != 401 or self._credentials.refresh_token is None:
            return response

        # Another caller may already have refreshed while this request was in flight.
        if self._credentials.access_token == sent_with:
            refreshed = await run_cancellable(self._refresher.refresh(), attempt.signal)
            if refreshed is CANCELLED:
                logger.debug("%s %s cancelled while awaiting refresh", attempt.method, attempt.path)
                return CANCELLED
            if not refreshed:
                return response

        logger.debug("Reissuing %s %s with refreshed credentials", attempt.method, attempt.path)
        return await self._dispatch(
            attempt, self._build_headers(attempt, self._credentials.get_auth_header()), timeout
        )

    def url_for(self, path: str) -> str:
        return f"{self._api_url}{path}"

    def _build_headers(
        self, attempt: RequestAttempt, auth_header: dict[str, str] | None
    ) -> dict[str, str]:
        headers = {**_BASE_HEADERS, **attempt.headers}
        if auth_header:
            headers.update(auth_header)
        return headers

    async def _dispatch(
        self, attempt: RequestAttempt, headers: dict[str, str], timeout_seconds: float
    ) -> HttpResponse | Cancelled:
        request = HttpRequest(
            method=attempt.method,
            url=self.url_for(attempt.path),
            headers=headers,
            params=attempt.params,
            json_body=attempt.json_body,
            timeout_seconds=timeout_seconds,
        )
        response = await send_async(self._session, request, signal=attempt.signal)
        if response is CANCELLED:
            logger.debug("%s %s cancelled", attempt.method, attempt.path)
        return response
