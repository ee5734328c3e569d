"""Tests for JSON file credential storage."""

import json
import stat
from pathlib import Path

from device_api_client.infrastructure import JsonFileStorage
from device_api_client.protocols import KeyValueStorage


class TestJsonFileStorage:
    """Tests for JsonFileStorage persistence."""

    def test_conforms_to_protocol(self, tmp_path: Path) -> None:
        assert isinstance(JsonFileStorage(tmp_path / "tokens.json"), KeyValueStorage)

    def test_missing_file_reads_as_empty(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "tokens.json")
        assert storage.get("device_access_token") is None

    def test_values_survive_a_new_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "tokens.json"
        JsonFileStorage(path).set("device_access_token", "A1")

        assert JsonFileStorage(path).get("device_access_token") == "A1"
        assert json.loads(path.read_text(encoding="utf-8")) == {"device_access_token": "A1"}

    def test_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "tokens.json"
        JsonFileStorage(path).set("device_refresh_token", "R1")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_remove_drops_only_that_key(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "tokens.json")
        storage.set("a", "1")
        storage.set("b", "2")

        storage.remove("a")

        assert storage.get("a") is None
        assert storage.get("b") == "2"

    def test_remove_missing_key_does_not_create_file(self, tmp_path: Path) -> None:
        path = tmp_path / "tokens.json"
        JsonFileStorage(path).remove("device_access_token")
        assert not path.exists()

    def test_malformed_file_reads_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "tokens.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStorage(path).get("device_access_token") is None

    def test_malformed_file_is_replaced_on_write(self, tmp_path: Path) -> None:
        path = tmp_path / "tokens.json"
        path.write_text('["wrong shape"]', encoding="utf-8")

        JsonFileStorage(path).set("device_access_token", "A2")

        assert json.loads(path.read_text(encoding="utf-8")) == {"device_access_token": "A2"}

    def test_unwritable_location_is_logged_not_raised(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = JsonFileStorage(blocker / "tokens.json")

        storage.set("device_access_token", "A1")

        assert storage.get("device_access_token") is None
