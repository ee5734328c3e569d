"""Observability helpers."""

from .logging import get_logger, redact, set_log_level

__all__ = ["get_logger", "redact", "set_log_level"]
