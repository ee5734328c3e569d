"""CLI for the device API client.

Commands:
- login: Exchange username/password for a stored token pair
- logout: End the session (always clears local tokens)
- whoami: Show the authenticated user
- passwd: Change the password
- status: Show health and session state
- get/post/put/delete: Call any API endpoint and print the JSON result
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn, Protocol

import typer
from pydantic import JsonValue
from rich import print as rprint
from rich import print_json

from . import __version__
from .client import ApiClient
from .config import ClientConfig
from .config_file import load_client_config_file
from .exceptions import ApiError, DeviceApiError
from .observability import set_log_level


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(self, *, config: ClientConfig) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    api: ApiClient


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: ClientConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(self) -> CliDependencies:
        """Return dependencies using the configured builder."""
        return self.deps_builder(config=self.config)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the device-api entry point.")


class InvalidParamError(typer.BadParameter):
    """Raised when a query parameter is not in key=value form."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Query parameters must look like key=value (got {value!r}).")


class InvalidJsonDataError(typer.BadParameter):
    """Raised when --data is not valid JSON."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"--data must be valid JSON ({detail}).")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _parse_params(values: list[str] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for value in values or []:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise InvalidParamError(value)
        params[key] = item
    return params


def _parse_data(data: str | None) -> object | None:
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise InvalidJsonDataError(str(exc)) from exc


def _fail(exc: DeviceApiError) -> NoReturn:
    if isinstance(exc, ApiError) and exc.status is not None:
        rprint(f"[red]✗ HTTP {exc.status}:[/red] {exc.message}")
    else:
        rprint(f"[red]✗ {exc}[/red]")
    raise typer.Exit(code=1)


def _run[ResultT](state: CliContext, action: Callable[[ApiClient], Awaitable[ResultT]]) -> ResultT:
    deps = state.build_dependencies()

    async def runner() -> ResultT:
        async with deps.api as api:
            return await action(api)

    try:
        return asyncio.run(runner())
    except DeviceApiError as exc:
        _fail(exc)


def _version_callback(value: bool) -> None:
    if value:
        rprint(f"device-api {__version__}")
        raise typer.Exit()


def _print_result(result: JsonValue | None) -> None:
    if result is None:
        rprint("[yellow]No result (request cancelled)[/yellow]")
        return
    print_json(data=result)


def create_app(deps_builder: DependenciesBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="Authenticated client for the device dashboard REST API.",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_file: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="TOML config file overriding environment settings",
            ),
        ] = None,
        url: Annotated[
            str | None,
            typer.Option(
                "--url",
                "-u",
                help="Device base URL (default: DEVICE_API_URL)",
            ),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option(
                "--verbose",
                "-v",
                help="Enable debug logging",
            ),
        ] = False,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        _ = version
        config = ClientConfig.from_env()
        if config_file is not None:
            try:
                config = config.with_file_overrides(load_client_config_file(config_file))
            except DeviceApiError as exc:
                _fail(exc)
        if url is not None:
            config = config.with_overrides(base_url=url)
        if verbose:
            set_log_level(logging.DEBUG)
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command()
    def login(
        ctx: typer.Context,
        username: Annotated[str, typer.Option("--username", "-U", prompt=True)],
        password: Annotated[str, typer.Option("--password", "-P", prompt=True, hide_input=True)],
    ) -> None:
        """Log in and store the token pair."""
        state = _get_context(ctx)
        _run(state, lambda api: api.login(username, password))
        rprint(f"[green]✓ Logged in as[/green] {username}")

    @app.command()
    def logout(ctx: typer.Context) -> None:
        """Log out and clear stored tokens."""
        state = _get_context(ctx)
        _run(state, lambda api: api.logout())
        rprint("[green]✓ Logged out[/green]")

    @app.command()
    def whoami(ctx: typer.Context) -> None:
        """Show the authenticated user."""
        state = _get_context(ctx)
        _print_result(_run(state, lambda api: api.get_me()))

    @app.command()
    def passwd(
        ctx: typer.Context,
        current_password: Annotated[
            str, typer.Option("--current", prompt="Current password", hide_input=True)
        ],
        new_password: Annotated[
            str,
            typer.Option(
                "--new", prompt="New password", hide_input=True, confirmation_prompt=True
            ),
        ],
    ) -> None:
        """Change the password."""
        state = _get_context(ctx)
        _run(state, lambda api: api.change_password(current_password, new_password))
        rprint("[green]✓ Password changed[/green]")

    @app.command()
    def status(ctx: typer.Context) -> None:
        """Show device health and local session state."""
        state = _get_context(ctx)

        async def check(api: ApiClient) -> tuple[bool, bool]:
            return await api.check_health(), api.is_authenticated()

        healthy, authenticated = _run(state, check)
        rprint(f"Device: {state.config.base_url}")
        rprint(f"  Reachable: {'[green]yes[/green]' if healthy else '[red]no[/red]'}")
        rprint(f"  Session: {'[green]active[/green]' if authenticated else '[yellow]none[/yellow]'}")

    @app.command()
    def get(
        ctx: typer.Context,
        path: Annotated[str, typer.Argument(help="Endpoint path, e.g. /system/info")],
        param: Annotated[
            list[str] | None,
            typer.Option("--param", "-q", help="Query parameter key=value (repeatable)"),
        ] = None,
    ) -> None:
        """GET an endpoint and print the JSON result."""
        state = _get_context(ctx)
        params = _parse_params(param)
        _print_result(_run(state, lambda api: api.get(path, params)))

    @app.command()
    def post(
        ctx: typer.Context,
        path: Annotated[str, typer.Argument(help="Endpoint path")],
        data: Annotated[str | None, typer.Option("--data", "-d", help="JSON body")] = None,
    ) -> None:
        """POST a JSON body and print the result."""
        state = _get_context(ctx)
        body = _parse_data(data)
        _print_result(_run(state, lambda api: api.post(path, body)))

    @app.command()
    def put(
        ctx: typer.Context,
        path: Annotated[str, typer.Argument(help="Endpoint path")],
        data: Annotated[str | None, typer.Option("--data", "-d", help="JSON body")] = None,
    ) -> None:
        """PUT a JSON body and print the result."""
        state = _get_context(ctx)
        body = _parse_data(data)
        _print_result(_run(state, lambda api: api.put(path, body)))

    @app.command()
    def delete(
        ctx: typer.Context,
        path: Annotated[str, typer.Argument(help="Endpoint path")],
        data: Annotated[str | None, typer.Option("--data", "-d", help="Optional JSON body")] = None,
    ) -> None:
        """DELETE an endpoint and print the result."""
        state = _get_context(ctx)
        body = _parse_data(data)
        _print_result(_run(state, lambda api: api.delete(path, body)))

    _ = (main, login, logout, whoami, passwd, status, get, post, put, delete)

    return app
