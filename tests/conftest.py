"""Pytest fixtures for the device API client tests.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import socket

import pytest

from tests.fakes import FakeHttpSession, InMemoryStorage, RecordingSleeper
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    _ = (self, kwargs)
    raise NetworkIsolationError(str(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> None:
    """Block all network access in tests.

    Tests that need HTTP should use FakeHttpSession. E2E tests against a real
    device must be marked with ``@pytest.mark.e2e`` and run separately.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)


@pytest.fixture
def fake_session() -> FakeHttpSession:
    """Provide a fake HTTP session with no routes."""
    return FakeHttpSession()


@pytest.fixture
def storage() -> InMemoryStorage:
    """Provide empty in-memory credential storage."""
    return InMemoryStorage()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    """Provide a sleep replacement that records backoff delays."""
    return RecordingSleeper()
