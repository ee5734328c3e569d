"""Error classification at the client boundary.

Two failure paths stay separate here: a response that arrived with a non-2xx
status (``classify_response``) and a request that never produced a response
(``classify_exception``). Neither raises while building the error value.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from ..exceptions import ApiError
from ..infrastructure.io.validation import ErrorBodyInput, IncomingDataError, validate_json_as
from ..types import HttpResponse

DEFAULT_ERROR_MESSAGE = "Request failed"


@dataclass(frozen=True)
class ErrorBody:
    """Message extracted from a JSON error body."""

    message: str
    parsed: bool


def parse_error_body(response: HttpResponse, fallback: str = DEFAULT_ERROR_MESSAGE) -> ErrorBody:
    """Read ``{error|message}`` from a failed response, falling back on any parse problem."""
    try:
        body = validate_json_as(ErrorBodyInput, response.content)
    except IncomingDataError:
        return ErrorBody(message=fallback, parsed=False)
    for key in ("error", "message"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return ErrorBody(message=value, parsed=True)
    return ErrorBody(message=fallback, parsed=True)


def classify_response(response: HttpResponse, fallback: str = DEFAULT_ERROR_MESSAGE) -> ApiError:
    """Build the ``ApiError`` for a non-OK response, preserving its status."""
    return ApiError(parse_error_body(response, fallback).message, response.status_code)


def classify_exception(error: requests.RequestException) -> ApiError:
    """Build the ``ApiError`` for a request that produced no response."""
    if isinstance(error, requests.Timeout):
        return ApiError(f"Request timed out: {error}")
    if isinstance(error, requests.ConnectionError):
        return ApiError(f"Could not reach the device: {error}")
    return ApiError(f"{DEFAULT_ERROR_MESSAGE}: {error}")
