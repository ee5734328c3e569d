"""Custom exceptions for the device API client.

Every failure that reaches a caller of the verb helpers is an ``ApiError``;
the remaining classes cover configuration loading.
"""

from __future__ import annotations


class DeviceApiError(Exception):
    """Base exception for all client errors."""

    pass


class ApiError(DeviceApiError):
    """Raised when a request terminates without a usable result.

    ``status`` carries the HTTP status when a response was received, so callers
    can tell "not supported" (501) from "server fault" (500) from "hardware
    absent" (503). It is ``None`` for network-level failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ApiError(message={self.message!r}, status={self.status!r})"

    @classmethod
    def for_malformed_body(cls, status: int) -> ApiError:
        return cls("Response body is not valid JSON", status)

    @classmethod
    def for_missing_access_token(cls, status: int) -> ApiError:
        return cls("Authentication response did not include an access token", status)


class ConfigFileNotFoundError(DeviceApiError):
    """Raised when a config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(DeviceApiError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file could not be parsed: {path} ({detail})")


class ConfigFileValidationError(DeviceApiError):
    """Raised when a config file does not match the expected schema."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file is invalid: {path} ({detail})")
