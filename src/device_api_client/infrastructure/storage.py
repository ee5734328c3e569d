"""Durable key/value storage for credentials.

Usage example:
    from pathlib import Path

    from device_api_client.infrastructure.storage import JsonFileStorage

    storage = JsonFileStorage(Path("~/.config/device-api/tokens.json").expanduser())
    storage.set("device_access_token", "...")

Storage is best-effort: an unreadable file reads as empty and a failed write
is logged, so a broken disk never takes the session down with it.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import override

from ..observability import get_logger
from ..protocols import KeyValueStorage
from .io.validation import IncomingDataError, validate_json_as

logger = get_logger("device_api_client.infrastructure.storage")

_FILE_MODE = 0o600


@dataclass
class JsonFileStorage(KeyValueStorage):
    """Stores string values in a single JSON object file."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    @override
    def get(self, key: str) -> str | None:
        return self._read().get(key)

    @override
    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    @override
    def remove(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)

    def _read(self) -> dict[str, str]:
        try:
            payload = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return {}
        try:
            return validate_json_as(dict[str, str], payload)
        except IncomingDataError:
            logger.warning("Ignoring malformed storage file %s", self.path)
            return {}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                os.chmod(tmp_name, _FILE_MODE)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Could not write %s: %s", self.path, exc)
