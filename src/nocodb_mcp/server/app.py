"""Starlette application assembly."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from nocodb_mcp import __version__
from nocodb_mcp.backend.client import NocoDBClient
from nocodb_mcp.server.handlers import register_tool_handlers
from nocodb_mcp.server.lowlevel import Server
from nocodb_mcp.server.session_manager import SessionManager
from nocodb_mcp.server.sse import MessageEndpoint, SseEndpoint
from nocodb_mcp.settings import Settings
from nocodb_mcp.tools.nocodb import register_nocodb_tools
from nocodb_mcp.tools.tool_manager import ToolManager
from nocodb_mcp.utilities.logging import get_logger

logger = get_logger(__name__)

SERVER_NAME = "nocodb-mcp-server"


def create_server(client: NocoDBClient) -> Server:
    """Build the protocol dispatcher with the NocoDB tool catalog."""
    tool_manager = register_nocodb_tools(ToolManager(), client)
    server = Server(name=SERVER_NAME, version=__version__)
    register_tool_handlers(server, tool_manager)
    return server


def create_app(settings: Settings, *, client: NocoDBClient | None = None) -> Starlette:
    """Return the ASGI app serving the SSE transport.

    The NocoDB client is closed when the app shuts down, whether it was
    passed in or built from ``settings``.
    """
    client = client or NocoDBClient.from_settings(settings)
    session_manager = SessionManager(
        create_server(client),
        keepalive_interval=settings.keepalive_interval,
    )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with client, session_manager.run():
            logger.info("Serving NocoDB base %s from %s", settings.nocodb_base_id, settings.nocodb_url)
            yield

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "sessions": session_manager.session_count})

    routes = [
        Route(
            settings.sse_path,
            endpoint=SseEndpoint(session_manager, settings.message_path),
            methods=["GET"],
        ),
        Route(
            settings.message_path,
            endpoint=MessageEndpoint(session_manager, max_body_bytes=settings.max_body_bytes),
            methods=["POST"],
        ),
        Route("/health", endpoint=health, methods=["GET"]),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.session_manager = session_manager
    return app
