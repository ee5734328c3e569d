"""Shared logging utilities for the client.

Usage example:
    from device_api_client.observability.logging import get_logger

    logger = get_logger("device_api_client.client.retry")
    logger.warning("Retrying %s %s in %.1fs", method, path, delay)
"""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_ROOT_NAME = "device_api_client"


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name).

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def set_log_level(level: int) -> None:
    """Apply ``level`` to every logger created for this package."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name == _ROOT_NAME or name.startswith(f"{_ROOT_NAME}."):
            if isinstance(logger, logging.Logger):
                logger.setLevel(level)


def redact(token: str | None) -> str:
    """Return a log-safe fingerprint of a credential."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return f"<{len(token)} chars>"
    return f"{token[:4]}…<{len(token)} chars>"
