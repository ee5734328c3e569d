"""HTTP session implementations for infrastructure.

Usage example:
    import requests

    from device_api_client.infrastructure.io.http import RequestsHttpSession, send_async

    session = RequestsHttpSession(session=requests.Session())
    response = await send_async(session, request, signal=None)

``requests`` is blocking, so ``send_async`` runs each call in a worker thread.
A cancelled call abandons the thread's result rather than interrupting it.
"""

from __future__ import annotations

import asyncio
from typing import override

import requests

from ...cancellation import AbortSignal, run_cancellable
from ...protocols import HttpSession
from ...types import Cancelled, HttpRequest, HttpResponse


def response_details(response: HttpResponse) -> str:
    """Return a compact status/body summary for log messages."""
    body = " ".join(response.text.split())
    if len(body) > 300:
        body = body[:300] + "..."
    return f"status={response.status_code}, body={body}"


class RequestsHttpSession(HttpSession):
    """Requests-backed session producing ``HttpResponse`` values."""

    def __init__(self, *, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()

    @override
    def send(self, request: HttpRequest) -> HttpResponse:
        r = self._session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            params=dict(request.params) if request.params else None,
            json=request.json_body,
            timeout=request.timeout_seconds,
        )
        return HttpResponse(
            status_code=r.status_code,
            content=r.content,
            headers=dict(r.headers),
        )

    @override
    def close(self) -> None:
        self._session.close()


async def send_async(
    session: HttpSession, request: HttpRequest, *, signal: AbortSignal | None
) -> HttpResponse | Cancelled:
    """Run ``session.send`` off the event loop, honouring ``signal``."""
    return await run_cancellable(asyncio.to_thread(session.send, request), signal)
