"""Concrete infrastructure implementations and shared helpers."""

from .io.http import RequestsHttpSession, response_details, send_async
from .resilience import RetryPolicy, RetryState
from .storage import JsonFileStorage

__all__ = [
    "JsonFileStorage",
    "RequestsHttpSession",
    "RetryPolicy",
    "RetryState",
    "response_details",
    "send_async",
]
