"""Retry wrapper around the request transport."""

from __future__ import annotations

import asyncio

from ..cancellation import SleepFunction, sleep_unless_cancelled
from ..infrastructure.resilience import RetryState
from ..observability import get_logger
from ..protocols import RetryPolicy
from ..types import CANCELLED, Cancelled, HttpResponse, RequestAttempt
from .transport import RequestTransport

logger = get_logger("device_api_client.client.retry")


class RetryingTransport:
    """Absorbs transient failures with bounded, backed-off retries.

    - Requests under an exempt prefix (the auth namespace) are attempted once
    - Successful and non-retryable responses return immediately
    - 5xx (except 503), 408, 429 and network errors retry after a backoff
    - A cancelled attempt or backoff returns ``CANCELLED`` without retrying
    - When attempts run out, the last response is returned (so its status
      reaches the error classifier) or the last network error is raised
    """

    def __init__(
        self,
        *,
        transport: RequestTransport,
        policy: RetryPolicy,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.policy = policy
        self._sleep = sleep

    async def send(
        self, attempt: RequestAttempt, *, timeout_seconds: float | None = None
    ) -> HttpResponse | Cancelled:
        if self.policy.is_exempt(attempt.path):
            return await self.transport.send(attempt, timeout_seconds=timeout_seconds)

        state = RetryState(policy=self.policy)
        while True:
            try:
                result = await self.transport.send(attempt, timeout_seconds=timeout_seconds)
            except self.policy.retry_exceptions as exc:
                if not self.policy.is_retryable_error(exc):
                    raise
                state.record_error(exc)
                outcome = f"{type(exc).__name__}: {exc}"
            else:
                if result is CANCELLED:
                    return CANCELLED
                if result.ok or not self.policy.is_retryable_status(result.status_code):
                    return result
                state.record_response(result)
                outcome = f"HTTP {result.status_code}"

            if not state.can_retry:
                break
            delay = state.next_delay()
            logger.warning(
                "%s %s failed (%s); retry %d/%d in %.1fs",
                attempt.method,
                attempt.path,
                outcome,
                state.attempt + 1,
                self.policy.max_retries,
                delay,
            )
            if await sleep_unless_cancelled(delay, attempt.signal, self._sleep) is CANCELLED:
                return CANCELLED
            state.advance()

        logger.warning(
            "%s %s failed after %d attempts (%s)",
            attempt.method,
            attempt.path,
            state.max_attempts,
            outcome,
        )
        return state.final_response()
