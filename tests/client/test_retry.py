"""Tests for the retrying transport."""

import asyncio

import pytest
import requests

from device_api_client.cancellation import AbortController
from device_api_client.client import (
    CredentialStore,
    RefreshCoordinator,
    RequestTransport,
    RetryingTransport,
)
from device_api_client.infrastructure import RetryPolicy
from device_api_client.types import CANCELLED, RequestAttempt
from tests.fakes import FakeHttpSession, RecordingSleeper, json_response
from tests.support.client import TEST_BASE_URL, stored_tokens

API_URL = f"{TEST_BASE_URL}/api/v1"


def _retrying(
    session: FakeHttpSession, sleeper: RecordingSleeper, *, max_retries: int = 2
) -> RetryingTransport:
    credentials = CredentialStore(storage=stored_tokens())
    refresher = RefreshCoordinator(
        session=session, credentials=credentials, api_url=API_URL, timeout_seconds=5.0
    )
    transport = RequestTransport(
        session=session,
        credentials=credentials,
        refresher=refresher,
        api_url=API_URL,
        timeout_seconds=30.0,
    )
    return RetryingTransport(
        transport=transport, policy=RetryPolicy(max_retries=max_retries), sleep=sleeper
    )


def _get(path: str = "/system/info") -> RequestAttempt:
    return RequestAttempt(method="GET", path=path)


class TestRetryingTransport:
    """Tests for RetryingTransport."""

    def test_success_is_not_retried(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/system/info", json_response(200, {}))

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == 200
        assert len(fake_session.calls) == 1
        assert sleeper.delays == []

    def test_transient_500_recovers(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply(
            "GET", "/system/info", json_response(500, {}), json_response(200, {"ok": True})
        )

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == 200
        assert sleeper.delays == [0.5]

    def test_persistent_500_returns_last_response(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/system/info", json_response(500, {"error": "boom"}))

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == 500
        assert len(fake_session.calls) == 3
        assert sleeper.delays == [0.5, 1.5]

    @pytest.mark.parametrize("status", [408, 429, 502, 504])
    def test_other_transient_statuses_are_retried(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper, status: int
    ) -> None:
        fake_session.reply("GET", "/system/info", json_response(status, {}))

        asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert len(fake_session.calls) == 3

    @pytest.mark.parametrize("status", [400, 403, 404, 409, 503])
    def test_non_retryable_statuses_return_immediately(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper, status: int
    ) -> None:
        fake_session.reply("GET", "/system/info", json_response(status, {}))

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == status
        assert len(fake_session.calls) == 1
        assert sleeper.delays == []

    def test_auth_paths_are_never_retried(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/auth/me", json_response(500, {}))

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get("/auth/me")))

        assert response is not CANCELLED
        assert response.status_code == 500
        assert len(fake_session.calls) == 1

    def test_network_error_recovers(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply(
            "GET",
            "/system/info",
            requests.ConnectionError("reset"),
            json_response(200, {}),
        )

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == 200
        assert sleeper.delays == [0.5]

    def test_persistent_network_error_is_raised(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/system/info", requests.Timeout("slow"))

        with pytest.raises(requests.Timeout):
            asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert len(fake_session.calls) == 3

    def test_broken_transfer_recovers(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply(
            "GET",
            "/system/info",
            requests.exceptions.ChunkedEncodingError("connection broken mid-body"),
            json_response(200, {"ok": True}),
        )

        response = asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert response is not CANCELLED
        assert response.status_code == 200
        assert len(fake_session.calls) == 2
        assert sleeper.delays == [0.5]

    def test_malformed_request_is_not_retried(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/system/info", requests.exceptions.InvalidURL("bad url"))

        with pytest.raises(requests.exceptions.InvalidURL):
            asyncio.run(_retrying(fake_session, sleeper).send(_get()))

        assert len(fake_session.calls) == 1
        assert sleeper.delays == []

    def test_zero_retries_sends_once(
        self, fake_session: FakeHttpSession, sleeper: RecordingSleeper
    ) -> None:
        fake_session.reply("GET", "/system/info", json_response(502, {}))

        asyncio.run(_retrying(fake_session, sleeper, max_retries=0).send(_get()))

        assert len(fake_session.calls) == 1
        assert sleeper.delays == []

    def test_abort_during_backoff_stops_retrying(self, fake_session: FakeHttpSession) -> None:
        fake_session.reply("GET", "/system/info", json_response(500, {}))
        controller = AbortController()
        delays: list[float] = []

        async def abort_then_wait(delay: float) -> None:
            delays.append(delay)
            controller.abort()
            await asyncio.sleep(30)

        retrying = _retrying(fake_session, RecordingSleeper())
        retrying = RetryingTransport(
            transport=retrying.transport, policy=retrying.policy, sleep=abort_then_wait
        )
        attempt = RequestAttempt(method="GET", path="/system/info", signal=controller.signal)

        assert asyncio.run(retrying.send(attempt)) is CANCELLED
        assert delays == [0.5]
        assert len(fake_session.calls) == 1
