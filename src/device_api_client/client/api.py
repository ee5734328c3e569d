"""The authenticated API client used by every caller.

Usage example:
    from device_api_client.composition import build_api_client
    from device_api_client.config import ClientConfig

    async with build_api_client(ClientConfig.from_env()) as api:
        await api.login("admin", "secret")
        mode = await api.get("/network/mode")

Construct one ``ApiClient`` at application start and pass it to whatever needs
it; each instance owns an independent session.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Self

import requests
from pydantic import JsonValue

from ..cancellation import AbortSignal
from ..exceptions import ApiError
from ..infrastructure.io.http import send_async
from ..infrastructure.io.validation import (
    IncomingDataError,
    parse_json_body,
    parse_token_pair,
    validate_as,
)
from ..observability import get_logger
from ..protocols import HttpSession, SessionExpiredListener
from ..types import CANCELLED, HttpRequest, HttpResponse, RequestAttempt
from .credentials import CredentialStore
from .errors import classify_exception, classify_response
from .refresh import RefreshCoordinator
from .retry import RetryingTransport
from .transport import RequestTransport

logger = get_logger("device_api_client.client.api")

LOGIN_PATH = "/auth/login"
LOGOUT_PATH = "/auth/logout"
ME_PATH = "/auth/me"
PASSWORD_PATH = "/auth/password"

# Statuses that mean "this optional hardware is not present".
UNAVAILABLE_STATUSES: frozenset[int] = frozenset({404, 501, 503})


def _success_result() -> dict[str, JsonValue]:
    return {"success": True}


class ApiClient:
    """Typed entry points over the credential/refresh/retry stack.

    Verb helpers resolve to parsed JSON, ``{"success": True}`` for 204, or
    ``None`` when the call was cancelled. Every terminal failure is raised
    as ``ApiError``.
    """

    def __init__(
        self,
        *,
        session: HttpSession,
        credentials: CredentialStore,
        refresher: RefreshCoordinator,
        transport: RequestTransport,
        retrying: RetryingTransport,
        health_url: str,
        probe_timeout_seconds: float,
    ) -> None:
        self._session = session
        self.credentials = credentials
        self.refresher = refresher
        self._transport = transport
        self._retrying = retrying
        self._health_url = health_url
        self._probe_timeout_seconds = probe_timeout_seconds

    # Verb helpers

    async def get(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        signal: AbortSignal | None = None,
        timeout_seconds: float | None = None,
    ) -> JsonValue | None:
        attempt = RequestAttempt(
            method="GET",
            path=path,
            params=dict(params) if params else None,
            headers=dict(headers or {}),
            signal=signal,
        )
        return await self._call(attempt, timeout_seconds)

    async def post(
        self,
        path: str,
        data: object | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        signal: AbortSignal | None = None,
    ) -> JsonValue | None:
        attempt = RequestAttempt(
            method="POST",
            path=path,
            json_body={} if data is None else data,
            headers=dict(headers or {}),
            signal=signal,
        )
        return await self._call(attempt)

    async def put(
        self,
        path: str,
        data: object | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        signal: AbortSignal | None = None,
    ) -> JsonValue | None:
        attempt = RequestAttempt(
            method="PUT",
            path=path,
            json_body={} if data is None else data,
            headers=dict(headers or {}),
            signal=signal,
        )
        return await self._call(attempt)

    async def delete(
        self,
        path: str,
        data: object | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        signal: AbortSignal | None = None,
    ) -> JsonValue | None:
        attempt = RequestAttempt(
            method="DELETE",
            path=path,
            json_body=data,
            headers=dict(headers or {}),
            signal=signal,
        )
        return await self._call(attempt)

    # Authentication

    async def login(
        self, username: str, password: str, *, signal: AbortSignal | None = None
    ) -> dict[str, JsonValue] | None:
        """Exchange a password for a token pair and store it.

        Raises:
            ApiError: If the server rejects the credentials or the reply has no token.
        """
        attempt = RequestAttempt(
            method="POST",
            path=LOGIN_PATH,
            json_body={"username": username, "password": password},
            signal=signal,
        )
        try:
            response = await self._transport.send(attempt, authenticate=False)
        except requests.RequestException as exc:
            raise classify_exception(exc) from exc
        if response is CANCELLED:
            return None
        if not response.ok:
            raise classify_response(response, "Login failed")

        try:
            payload = validate_as(dict[str, JsonValue], parse_json_body(response.content))
            access, refresh = parse_token_pair(response.content)
        except IncomingDataError as exc:
            raise ApiError.for_malformed_body(response.status_code) from exc
        if access is None:
            raise ApiError.for_missing_access_token(response.status_code)

        self.credentials.set_tokens(access, refresh)
        logger.info("Logged in as %s", username)
        return payload

    async def logout(self) -> None:
        """Tell the server we are leaving, then always drop the local session."""
        try:
            response = await self._transport.send(RequestAttempt(method="POST", path=LOGOUT_PATH))
        except requests.RequestException as exc:
            logger.debug("Logout request failed: %s", exc)
        else:
            if response is not CANCELLED and not response.ok:
                logger.debug("Logout request returned HTTP %s", response.status_code)
        self.credentials.clear_tokens()

    async def refresh(self) -> bool:
        return await self.refresher.refresh()

    async def get_me(self, *, signal: AbortSignal | None = None) -> JsonValue | None:
        return await self.get(ME_PATH, signal=signal)

    async def change_password(
        self, current_password: str, new_password: str, *, signal: AbortSignal | None = None
    ) -> JsonValue | None:
        """Change the password; a reply carrying a new access token replaces the current one."""
        result = await self.post(
            PASSWORD_PATH,
            {"current_password": current_password, "new_password": new_password},
            signal=signal,
        )
        if isinstance(result, dict):
            access = result.get("access_token") or result.get("token")
            refresh = result.get("refresh_token")
            if isinstance(access, str) and access:
                self.credentials.set_tokens(access, refresh if isinstance(refresh, str) else None)
        return result

    def is_authenticated(self) -> bool:
        return self.credentials.is_authenticated()

    def subscribe_session_expired(self, listener: SessionExpiredListener) -> Callable[[], None]:
        return self.credentials.subscribe_session_expired(listener)

    # Background checks

    async def probe(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
        *,
        signal: AbortSignal | None = None,
    ) -> JsonValue | None:
        """GET an optional-hardware endpoint; absent hardware yields ``None``."""
        try:
            return await self.get(
                path, params, signal=signal, timeout_seconds=self._probe_timeout_seconds
            )
        except ApiError as exc:
            if exc.status in UNAVAILABLE_STATUSES:
                logger.debug("Probe %s unavailable (HTTP %s)", path, exc.status)
                return None
            raise

    async def check_health(self, *, signal: AbortSignal | None = None) -> bool:
        """Return True when the device answers its health endpoint."""
        request = HttpRequest(
            method="GET",
            url=self._health_url,
            headers={"Accept": "application/json"},
            timeout_seconds=self._probe_timeout_seconds,
        )
        try:
            response = await send_async(self._session, request, signal=signal)
        except requests.RequestException as exc:
            logger.debug("Health check failed: %s", exc)
            return False
        return response is not CANCELLED and response.ok

    # Lifecycle

    def close(self) -> None:
        self._session.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    async def _call(
        self, attempt: RequestAttempt, timeout_seconds: float | None = None
    ) -> JsonValue | None:
        try:
            response = await self._retrying.send(attempt, timeout_seconds=timeout_seconds)
        except requests.RequestException as exc:
            raise classify_exception(exc) from exc
        if response is CANCELLED:
            return None
        return _read_json(response)


def _read_json(response: HttpResponse) -> JsonValue:
    if not response.ok:
        raise classify_response(response)
    if response.status_code == 204:
        return _success_result()
    try:
        return parse_json_body(response.content)
    except IncomingDataError as exc:
        raise ApiError.for_malformed_body(response.status_code) from exc
