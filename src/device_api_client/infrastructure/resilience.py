"""Resilience utilities for infrastructure.

Usage example:
    from device_api_client.infrastructure.resilience import RetryPolicy, RetryState

    policy = RetryPolicy(max_retries=2, backoff_base_seconds=0.5, backoff_multiplier=3.0)
    policy.compute_backoff(0)  # 0.5
    policy.compute_backoff(1)  # 1.5
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import override

import requests

from ..protocols import RetryPolicy as RetryPolicyProtocol
from ..types import HttpResponse

# 503 from the device means optional hardware is absent; retrying cannot fix that.
NON_RETRYABLE_SERVER_STATUSES: frozenset[int] = frozenset({503})
RETRYABLE_CLIENT_STATUSES: frozenset[int] = frozenset({408, 429})

# Malformed requests fail identically on every attempt.
REQUEST_CONSTRUCTION_ERRORS: tuple[type[Exception], ...] = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
    requests.exceptions.InvalidJSONError,
)


@dataclass(frozen=True)
class RetryPolicy(RetryPolicyProtocol):
    """Bounded exponential backoff for transient failures."""

    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_multiplier: float = 3.0
    exempt_prefixes: tuple[str, ...] = ("/auth",)
    retry_exceptions: tuple[type[Exception], ...] = (requests.RequestException,)
    non_retryable_exceptions: tuple[type[Exception], ...] = REQUEST_CONSTRUCTION_ERRORS

    @override
    def compute_backoff(self, attempt: int) -> float:
        """Delay after the 0-based ``attempt``: ``base * multiplier ** attempt``."""
        return float(self.backoff_base_seconds * (self.backoff_multiplier**attempt))

    @override
    def is_retryable_status(self, status: int) -> bool:
        if status in RETRYABLE_CLIENT_STATUSES:
            return True
        if status in NON_RETRYABLE_SERVER_STATUSES:
            return False
        return status >= 500

    @override
    def is_retryable_error(self, error: Exception) -> bool:
        return isinstance(error, self.retry_exceptions) and not isinstance(
            error, self.non_retryable_exceptions
        )

    @override
    def is_exempt(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(f"{prefix}/") or path.startswith(f"{prefix}?")
            for prefix in self.exempt_prefixes
        )


@dataclass
class RetryState:
    """Attempt bookkeeping for one logical call."""

    policy: RetryPolicyProtocol
    attempt: int = 0
    last_error: Exception | None = None
    last_response: HttpResponse | None = field(default=None, repr=False)

    @property
    def max_attempts(self) -> int:
        return self.policy.max_retries + 1

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.policy.max_retries

    def next_delay(self) -> float:
        return self.policy.compute_backoff(self.attempt)

    def record_response(self, response: HttpResponse) -> None:
        self.last_response = response
        self.last_error = None

    def record_error(self, error: Exception) -> None:
        self.last_error = error
        self.last_response = None

    def advance(self) -> None:
        self.attempt += 1

    def final_response(self) -> HttpResponse:
        """Return the last recorded response, or raise the last recorded error."""
        if self.last_error is not None:
            raise self.last_error
        if self.last_response is None:
            raise RuntimeError("No attempt has been recorded.")
        return self.last_response
