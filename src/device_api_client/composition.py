"""Composition root for wiring the client and CLI dependencies."""

from __future__ import annotations

import asyncio

import requests

from .cancellation import SleepFunction
from .cli import CliDependencies, create_app
from .client import (
    ApiClient,
    CredentialStore,
    RefreshCoordinator,
    RequestTransport,
    RetryingTransport,
)
from .config import ClientConfig
from .infrastructure import JsonFileStorage, RequestsHttpSession, RetryPolicy
from .protocols import HttpSession, KeyValueStorage


def build_api_client(
    config: ClientConfig,
    *,
    session: HttpSession | None = None,
    storage: KeyValueStorage | None = None,
    sleep: SleepFunction = asyncio.sleep,
) -> ApiClient:
    """Build an ``ApiClient`` with its full credential/refresh/retry stack.

    Args:
        config: Client configuration.
        session: HTTP session override (defaults to a requests-backed session).
        storage: Credential storage override (defaults to the configured token file).
        sleep: Backoff sleep, replaceable in tests.
    """
    http_session = session or RequestsHttpSession(session=requests.Session())
    credentials = CredentialStore(storage=storage or JsonFileStorage(config.token_path))
    refresher = RefreshCoordinator(
        session=http_session,
        credentials=credentials,
        api_url=config.api_url,
        timeout_seconds=config.timeout_seconds,
    )
    transport = RequestTransport(
        session=http_session,
        credentials=credentials,
        refresher=refresher,
        api_url=config.api_url,
        timeout_seconds=config.timeout_seconds,
    )
    retry_policy = RetryPolicy(
        max_retries=config.max_retries,
        backoff_base_seconds=config.backoff_base_seconds,
        backoff_multiplier=config.backoff_multiplier,
    )
    retrying = RetryingTransport(transport=transport, policy=retry_policy, sleep=sleep)
    return ApiClient(
        session=http_session,
        credentials=credentials,
        refresher=refresher,
        transport=transport,
        retrying=retrying,
        health_url=config.health_url,
        probe_timeout_seconds=config.probe_timeout_seconds,
    )


def build_cli_dependencies(*, config: ClientConfig) -> CliDependencies:
    """Build concrete dependencies for CLI commands."""
    return CliDependencies(api=build_api_client(config))


app = create_app(build_cli_dependencies)
