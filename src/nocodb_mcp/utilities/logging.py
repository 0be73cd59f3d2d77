"""Logging utilities for the NocoDB MCP server."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "nocodb_api_token",
        "api_token",
        "xc-token",
        "authorization",
    }
)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    Args:
        name: the name of the logger, usually ``__name__``

    Returns:
        a logger instance
    """
    return logging.getLogger(name)


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server.

    Args:
        level: the log level to use
    """
    handlers: list[logging.Handler] = []
    try:
        from rich.console import Console
        from rich.logging import RichHandler

        handlers.append(RichHandler(console=Console(stderr=True), rich_tracebacks=True))
    except ImportError:
        pass

    if not handlers:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=handlers,
    )


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: set[str] | frozenset[str] | None = None,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***".

    Parameters
    ----------
    data:
        Original mapping (typically settings or request headers). If *None*
        the function simply returns *None*.
    sensitive_keys:
        Optional set of lower-case keys that should be hidden; defaults to
        the NocoDB token and authorization header names.
    """

    if data is None:
        return None

    sensitive_keys = sensitive_keys or DEFAULT_SENSITIVE_KEYS

    redacted: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            redacted[key] = "***"
        else:
            redacted[key] = value

    return redacted
