"""Cooperative cancellation for in-flight requests.

Usage example:
    from device_api_client.cancellation import AbortScope

    with AbortScope() as scope:
        info = await api.get("/system/info", signal=scope.signal())

Signals are plain values threaded through request options. Aborting never
raises inside the request; the call resolves to the ``CANCELLED`` outcome
instead. ``abort()`` must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Self

from .types import CANCELLED, Cancelled

SleepFunction = Callable[[float], Awaitable[None]]


class AbortSignal:
    """Read side of an abort: observed by the transport layers."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    async def wait(self) -> None:
        """Suspend until the signal is aborted."""
        await self._event.wait()

    def _abort(self, reason: str | None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()


class AbortController:
    """Owner of a single ``AbortSignal``."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: str | None = None) -> None:
        self.signal._abort(reason)


class AbortScope:
    """Tracks the signals handed out for one UI lifetime and aborts them together.

    ``signal()`` reuses the current signal until it is aborted; ``new_signal()``
    starts a fresh group while keeping the previous ones tracked for cleanup.
    """

    def __init__(self) -> None:
        self._current = AbortController()
        self._controllers: list[AbortController] = [self._current]
        self._closed = False

    def signal(self) -> AbortSignal:
        if self._current.signal.aborted:
            self._track_new()
        return self._current.signal

    def new_signal(self) -> AbortSignal:
        self._track_new()
        return self._current.signal

    def abort(self, reason: str | None = None) -> None:
        """Abort everything in flight and keep the scope usable."""
        self._abort_all(reason)
        self._track_new()

    def close(self) -> None:
        """Abort everything in flight; the scope hands out no further live signals."""
        self._abort_all("scope closed")
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _track_new(self) -> None:
        self._current = AbortController()
        if self._closed:
            self._current.abort("scope closed")
            return
        self._controllers.append(self._current)

    def _abort_all(self, reason: str | None) -> None:
        for controller in self._controllers:
            controller.abort(reason)
        self._controllers.clear()


async def run_cancellable[ResultT](
    work: Awaitable[ResultT], signal: AbortSignal | None
) -> ResultT | Cancelled:
    """Await ``work`` unless ``signal`` fires first.

    When the signal wins, ``work`` is cancelled and ``CANCELLED`` is returned.
    Cancellation of the calling task still propagates as ``CancelledError``.
    """
    if signal is None:
        return await work
    if signal.aborted:
        if asyncio.iscoroutine(work):
            work.close()
        return CANCELLED

    work_task = asyncio.ensure_future(work)
    abort_task = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({work_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work_task.cancel()
        abort_task.cancel()
        raise
    abort_task.cancel()
    if work_task in done:
        return work_task.result()
    work_task.cancel()
    return CANCELLED


async def sleep_unless_cancelled(
    delay_seconds: float,
    signal: AbortSignal | None,
    sleep: SleepFunction = asyncio.sleep,
) -> None | Cancelled:
    """Sleep for ``delay_seconds``; return ``CANCELLED`` if the signal fires first."""
    return await run_cancellable(sleep(delay_seconds), signal)
