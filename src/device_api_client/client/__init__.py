"""Authenticated API client: credentials, refresh, transport, retry, verb helpers."""

from .api import ApiClient
from .credentials import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, CredentialStore
from .errors import classify_exception, classify_response, parse_error_body
from .refresh import RefreshCoordinator
from .retry import RetryingTransport
from .transport import RequestTransport

__all__ = [
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "ApiClient",
    "CredentialStore",
    "RefreshCoordinator",
    "RequestTransport",
    "RetryingTransport",
    "classify_exception",
    "classify_response",
    "parse_error_body",
]
