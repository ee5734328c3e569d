"""Exports for test fakes."""

from .clock import RecordingSleeper
from .http import FakeHttpSession, bearer_of, json_response
from .storage import InMemoryStorage

__all__ = [
    "FakeHttpSession",
    "InMemoryStorage",
    "RecordingSleeper",
    "bearer_of",
    "json_response",
]
