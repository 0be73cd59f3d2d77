"""Utilities for creating standardized httpx AsyncClient instances."""

from typing import Any

import httpx

__all__ = ["NOCODB_TOKEN_HEADER", "create_nocodb_http_client"]

NOCODB_TOKEN_HEADER = "xc-token"


def create_nocodb_http_client(
    base_url: str,
    api_token: str,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx AsyncClient preconfigured for the NocoDB REST API.

    Defaults:
    - the API token is sent in the ``xc-token`` header on every request
    - follow_redirects=True
    - a timeout of 30 seconds if not specified

    Args:
        base_url: NocoDB instance URL, without a trailing slash.
        api_token: NocoDB API token.
        Any other keyword argument supported by httpx.AsyncClient (e.g. timeout,
        transport, verify). Defaults are applied unless overridden.

    Returns:
        Configured httpx.AsyncClient instance.

    Note:
        The returned AsyncClient must be closed (or used as a context manager) to
        release its connections.

    Examples:
        async with create_nocodb_http_client("https://app.nocodb.com", token) as client:
            response = await client.get("/api/v2/meta/bases/p_abc/tables")
    """
    headers = {NOCODB_TOKEN_HEADER: api_token, **kwargs.pop("headers", {})}
    default_kwargs: dict[str, Any] = {
        "follow_redirects": True,
        "timeout": httpx.Timeout(30.0),
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(base_url=base_url, headers=headers, **default_kwargs)
