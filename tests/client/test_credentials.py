"""Tests for the credential store."""

import pytest

from device_api_client.client import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, CredentialStore
from tests.fakes import InMemoryStorage
from tests.support.client import stored_tokens


class TestCredentialStore:
    """Tests for token state, persistence and session-expired listeners."""

    def test_empty_storage_starts_unauthenticated(self) -> None:
        store = CredentialStore(storage=InMemoryStorage())
        assert store.is_authenticated() is False
        assert store.get_auth_header() is None
        assert store.refresh_token is None

    def test_restores_session_from_storage(self) -> None:
        store = CredentialStore(storage=stored_tokens("A1", "R1"))
        assert store.access_token == "A1"
        assert store.refresh_token == "R1"
        assert store.get_auth_header() == {"Authorization": "Bearer A1"}

    def test_set_tokens_persists_both(self) -> None:
        storage = InMemoryStorage()
        store = CredentialStore(storage=storage)

        store.set_tokens("A1", "R1")

        assert storage.snapshot() == {ACCESS_TOKEN_KEY: "A1", REFRESH_TOKEN_KEY: "R1"}
        assert CredentialStore(storage=storage).session == store.session

    def test_set_tokens_without_refresh_keeps_current_one(self) -> None:
        storage = stored_tokens("A1", "R1")
        store = CredentialStore(storage=storage)

        store.set_tokens("A2")

        assert store.access_token == "A2"
        assert store.refresh_token == "R1"
        assert storage.get(REFRESH_TOKEN_KEY) == "R1"

    def test_clear_tokens_wipes_memory_and_storage(self) -> None:
        storage = stored_tokens("A1", "R1")
        store = CredentialStore(storage=storage)

        store.clear_tokens()

        assert store.is_authenticated() is False
        assert store.get_auth_header() is None
        assert storage.snapshot() == {}

    def test_clear_tokens_notifies_listeners(self) -> None:
        store = CredentialStore(storage=stored_tokens())
        events: list[str] = []
        store.subscribe_session_expired(lambda: events.append("first"))
        store.subscribe_session_expired(lambda: events.append("second"))

        store.clear_tokens()

        assert events == ["first", "second"]

    def test_unsubscribe_stops_notifications(self) -> None:
        store = CredentialStore(storage=stored_tokens())
        events: list[str] = []
        unsubscribe = store.subscribe_session_expired(lambda: events.append("fired"))

        unsubscribe()
        unsubscribe()
        store.clear_tokens()

        assert events == []

    def test_failing_listener_does_not_block_others(self) -> None:
        store = CredentialStore(storage=stored_tokens())
        events: list[str] = []

        def broken() -> None:
            raise RuntimeError("listener bug")

        store.subscribe_session_expired(broken)
        store.subscribe_session_expired(lambda: events.append("still called"))

        store.clear_tokens()

        assert events == ["still called"]

    @pytest.mark.parametrize("access", ["", None])
    def test_blank_stored_access_token_is_ignored(self, access: str | None) -> None:
        storage = InMemoryStorage()
        if access is not None:
            storage.set(ACCESS_TOKEN_KEY, access)
        assert CredentialStore(storage=storage).is_authenticated() is False
