"""Centralised, injectable configuration for the device API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Self

from dotenv import load_dotenv

from .config_file import ClientConfigFile

DEFAULT_TOKEN_FILE = "~/.config/device-api/tokens.json"


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for one API client.

    Load from environment with `ClientConfig.from_env()` or construct directly for testing.
    """

    # Endpoint
    base_url: str = "http://localhost"
    api_prefix: str = "/api/v1"
    health_path: str = "/health"
    timeout_seconds: float = 30.0
    probe_timeout_seconds: float = 3.0

    # Retry
    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_multiplier: float = 3.0

    # Credentials
    token_file: str = DEFAULT_TOKEN_FILE

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_prefix.strip('/')}".rstrip("/")

    @property
    def health_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.health_path.lstrip('/')}"

    @property
    def token_path(self) -> Path:
        return Path(self.token_file).expanduser()

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            ClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            base_url=os.getenv("DEVICE_API_URL", "").strip() or "http://localhost",
            api_prefix=os.getenv("DEVICE_API_PREFIX", "/api/v1").strip(),
            health_path=os.getenv("DEVICE_API_HEALTH_PATH", "").strip() or "/health",
            timeout_seconds=_parse_positive_float(
                os.getenv("DEVICE_API_TIMEOUT_SECONDS", "30"),
                env_name="DEVICE_API_TIMEOUT_SECONDS",
            ),
            probe_timeout_seconds=_parse_positive_float(
                os.getenv("DEVICE_API_PROBE_TIMEOUT_SECONDS", "3"),
                env_name="DEVICE_API_PROBE_TIMEOUT_SECONDS",
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("DEVICE_API_MAX_RETRIES", "2"),
                env_name="DEVICE_API_MAX_RETRIES",
            ),
            backoff_base_seconds=_parse_positive_float(
                os.getenv("DEVICE_API_BACKOFF_BASE_SECONDS", "0.5"),
                env_name="DEVICE_API_BACKOFF_BASE_SECONDS",
            ),
            backoff_multiplier=_parse_positive_float(
                os.getenv("DEVICE_API_BACKOFF_MULTIPLIER", "3"),
                env_name="DEVICE_API_BACKOFF_MULTIPLIER",
            ),
            token_file=os.getenv("DEVICE_API_TOKEN_FILE", "").strip() or DEFAULT_TOKEN_FILE,
        )

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        token_file: str | None = None,
        max_retries: int | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            base_url=self.base_url if base_url is None else base_url.strip(),
            token_file=self.token_file if token_file is None else token_file.strip(),
            max_retries=self.max_retries if max_retries is None else max_retries,
        )

    def with_file_overrides(self, file_config: ClientConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            base_url=self.base_url if file_config.base_url is None else file_config.base_url,
            api_prefix=self.api_prefix
            if file_config.api_prefix is None
            else file_config.api_prefix,
            health_path=self.health_path
            if file_config.health_path is None
            else file_config.health_path,
            timeout_seconds=self.timeout_seconds
            if file_config.timeout_seconds is None
            else file_config.timeout_seconds,
            probe_timeout_seconds=self.probe_timeout_seconds
            if file_config.probe_timeout_seconds is None
            else file_config.probe_timeout_seconds,
            max_retries=self.max_retries
            if file_config.max_retries is None
            else file_config.max_retries,
            backoff_base_seconds=self.backoff_base_seconds
            if file_config.backoff_base_seconds is None
            else file_config.backoff_base_seconds,
            backoff_multiplier=self.backoff_multiplier
            if file_config.backoff_multiplier is None
            else file_config.backoff_multiplier,
            token_file=self.token_file
            if file_config.token_file is None
            else file_config.token_file,
        )


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    """Parse a non-negative integer from an environment variable."""
    text = value.strip()
    try:
        parsed = int(text)
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive number from an environment variable."""
    text = value.strip()
    try:
        parsed = float(text)
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed
