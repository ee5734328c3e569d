"""Pydantic-based validation helpers for inbound API payloads."""

from __future__ import annotations

from typing import TypedDict

from pydantic import JsonValue, TypeAdapter, ValidationError


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


class TokenPairInput(TypedDict, total=False):
    access_token: str | None
    token: str | None
    refresh_token: str | None


class ErrorBodyInput(TypedDict, total=False):
    error: object
    message: object


def validate_as[SchemaT](schema: type[SchemaT], payload: object) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        message = f"Invalid payload for {schema}."
        raise IncomingDataError(message) from exc


def validate_json_as[SchemaT](schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema}."
        raise IncomingDataError(message) from exc


def parse_json_body(payload: bytes) -> JsonValue:
    """Parse a response body into plain JSON values."""
    return validate_json_as(JsonValue, payload)


def parse_token_pair(payload: bytes) -> tuple[str | None, str | None]:
    """Extract ``(access, refresh)`` from an auth response body.

    Accepts the legacy ``token`` field when ``access_token`` is absent.
    """
    data = validate_json_as(TokenPairInput, payload)
    access = data.get("access_token") or data.get("token") or None
    refresh = data.get("refresh_token") or None
    return access, refresh
