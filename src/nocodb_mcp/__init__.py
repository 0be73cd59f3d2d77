"""Expose a NocoDB base as Model Context Protocol tools over HTTP+SSE."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nocodb-mcp-server")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
