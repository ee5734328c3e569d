"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces the client layers depend on,
enabling isolated unit testing with fake implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .types import HttpRequest, HttpResponse

SessionExpiredListener = Callable[[], None]


@runtime_checkable
class HttpSession(Protocol):
    """Abstract blocking HTTP session.

    Implementations are called from worker threads and must not touch
    event-loop state.
    """

    def send(self, request: HttpRequest) -> HttpResponse:
        """Perform one HTTP call.

        Raises:
            requests.RequestException: On network-level failures.
        """
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...


@runtime_checkable
class KeyValueStorage(Protocol):
    """Abstract durable string storage (the credential persistence layer)."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent or unreadable."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    def remove(self, key: str) -> None:
        """Remove a value if present."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy for transient failures."""

    max_retries: int
    retry_exceptions: tuple[type[Exception], ...]

    def compute_backoff(self, attempt: int) -> float:
        """Return the delay before the retry that follows ``attempt`` (0-based)."""
        ...

    def is_retryable_status(self, status: int) -> bool:
        """Return True when a response with ``status`` may succeed on retry."""
        ...

    def is_retryable_error(self, error: Exception) -> bool:
        """Return True when a raised transport error may succeed on retry."""
        ...

    def is_exempt(self, path: str) -> bool:
        """Return True when requests to ``path`` are attempted exactly once."""
        ...
