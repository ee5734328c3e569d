"""Value types shared by the client layers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Final, Literal

if TYPE_CHECKING:
    from .cancellation import AbortSignal

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]


def _no_headers() -> Mapping[str, str]:
    return {}


@dataclass(frozen=True)
class SessionTokens:
    """The credential pair held by the credential store."""

    access_token: str | None = None
    refresh_token: str | None = None


@dataclass(frozen=True)
class RequestAttempt:
    """One logical API call, addressed relative to the API prefix."""

    method: HttpMethod
    path: str
    params: Mapping[str, str] | None = None
    json_body: object | None = None
    headers: Mapping[str, str] = field(default_factory=_no_headers)
    signal: AbortSignal | None = None


@dataclass(frozen=True)
class HttpRequest:
    """A fully resolved request handed to an ``HttpSession``."""

    method: HttpMethod
    url: str
    headers: Mapping[str, str]
    timeout_seconds: float
    params: Mapping[str, str] | None = None
    json_body: object | None = None


@dataclass(frozen=True)
class HttpResponse:
    """Status, headers and raw body of a completed HTTP call."""

    status_code: int
    content: bytes = b""
    headers: Mapping[str, str] = field(default_factory=_no_headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @classmethod
    def from_json(cls, status_code: int, payload: object) -> HttpResponse:
        return cls(
            status_code=status_code,
            content=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )


class Cancelled(Enum):
    """Outcome of a call whose abort signal fired: no result, not an error."""

    CANCELLED = "cancelled"

    def __bool__(self) -> bool:
        return False


CANCELLED: Final = Cancelled.CANCELLED
