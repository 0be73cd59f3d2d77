"""Protocol dispatcher: JSON-RPC method registry and dispatch.

No I/O, no transport knowledge. The session manager hands every decoded
message to :meth:`Server.handle_message` and writes out whatever comes back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic import BaseModel

from nocodb_mcp.exceptions import InvalidParams, MethodNotFound, ToolCallError
from nocodb_mcp.types import (
    INTERNAL_ERROR,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    ErrorData,
    Implementation,
    InitializeRequestParams,
    InitializeResult,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
    ServerCapabilities,
    ToolsCapability,
)
from nocodb_mcp.utilities.logging import get_logger

if TYPE_CHECKING:
    from nocodb_mcp.server.session import Session

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Per-message context passed to handlers."""

    session_id: str | None
    request_id: RequestId | None = None
    session: Session | None = None


RequestHandler = Callable[[RequestContext, JSONRPCRequest], Awaitable[Any]]
NotificationHandler = Callable[[RequestContext, JSONRPCNotification], Awaitable[None]]


class Server:
    """Handler registry + dispatch.

    ``initialize`` and ``ping`` are answered by the server itself; everything
    else goes to a handler registered with :meth:`request_handler`.

    Usage:
        server = Server(name="nocodb-mcp-server", version="0.1.0")

        @server.request_handler("tools/list")
        async def list_tools(ctx: RequestContext, request: JSONRPCRequest):
            return ListToolsResult(tools=[...])
    """

    def __init__(self, *, name: str, version: str, instructions: str | None = None) -> None:
        self.name = name
        self.version = version
        self.instructions = instructions
        self._request_handlers: dict[str, RequestHandler] = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
        }
        self._notification_handlers: dict[str, NotificationHandler] = {}

    def request_handler(self, method: str) -> Callable[[RequestHandler], RequestHandler]:
        """Decorator to register a request handler for a given method."""

        def decorator(fn: RequestHandler) -> RequestHandler:
            self._request_handlers[method] = fn
            return fn

        return decorator

    def notification_handler(self, method: str) -> Callable[[NotificationHandler], NotificationHandler]:
        """Decorator to register a notification handler for a given method."""

        def decorator(fn: NotificationHandler) -> NotificationHandler:
            self._notification_handlers[method] = fn
            return fn

        return decorator

    async def handle_message(self, ctx: RequestContext, message: JSONRPCMessage) -> JSONRPCResponse | None:
        """Dispatch a single message.

        Requests produce a response. Notifications and stray client responses
        produce None.
        """
        if isinstance(message, JSONRPCRequest):
            return await self.dispatch_request(ctx, message)
        if isinstance(message, JSONRPCNotification):
            await self.dispatch_notification(ctx, message)
            return None
        # No server-to-client requests are ever issued, so a response from the
        # client has nothing to correlate with.
        logger.debug("Ignoring client response on session %s", ctx.session_id)
        return None

    async def dispatch_request(self, ctx: RequestContext, request: JSONRPCRequest) -> JSONRPCResponse:
        """Dispatch a request to the appropriate handler."""
        try:
            handler = self._request_handlers.get(request.method)
            if not handler:
                raise MethodNotFound(f"Method not found: {request.method}")
            result = await handler(ctx, request)
        except ToolCallError as e:
            logger.info("Request %s rejected: %s", request.method, e)
            return JSONRPCErrorResponse(id=request.id, error=e.error)
        except Exception:
            logger.exception("Handler error for %s", request.method)
            return JSONRPCErrorResponse(
                id=request.id,
                error=ErrorData(code=INTERNAL_ERROR, message="Internal error"),
            )

        # Handler can return a BaseModel (serialized) or a raw dict
        if isinstance(result, BaseModel):
            result_data = result.model_dump(by_alias=True, exclude_none=True, mode="json")
        elif isinstance(result, dict):
            result_data = result
        else:
            result_data = {}
        return JSONRPCResultResponse(id=request.id, result=result_data)

    async def dispatch_notification(self, ctx: RequestContext, notification: JSONRPCNotification) -> None:
        """Dispatch a notification to the appropriate handler."""
        handler = self._notification_handlers.get(notification.method)
        if not handler:
            logger.debug("No handler for notification %s", notification.method)
            return
        try:
            await handler(ctx, notification)
        except Exception:
            logger.exception("Notification handler error for %s", notification.method)

    def get_capabilities(self) -> ServerCapabilities:
        """Derive capabilities from registered handlers."""
        caps = ServerCapabilities()
        if "tools/list" in self._request_handlers or "tools/call" in self._request_handlers:
            caps.tools = ToolsCapability(list_changed=False)
        return caps

    async def _handle_initialize(self, ctx: RequestContext, request: JSONRPCRequest) -> InitializeResult:
        try:
            params = InitializeRequestParams.model_validate(request.params or {})
        except pydantic.ValidationError as e:
            raise InvalidParams(f"Invalid initialize params: {e}") from e

        if params.protocol_version in SUPPORTED_PROTOCOL_VERSIONS:
            protocol_version = params.protocol_version
        else:
            protocol_version = LATEST_PROTOCOL_VERSION

        client = params.client_info
        logger.info(
            "Session %s initialized by %s (protocol %s)",
            ctx.session_id,
            f"{client.name} {client.version}" if client else "unknown client",
            protocol_version,
        )
        if ctx.session is not None:
            ctx.session.client_info = client
            ctx.session.protocol_version = protocol_version

        return InitializeResult(
            protocol_version=protocol_version,
            capabilities=self.get_capabilities(),
            server_info=Implementation(name=self.name, version=self.version),
            instructions=self.instructions,
        )

    async def _handle_ping(self, ctx: RequestContext, request: JSONRPCRequest) -> dict[str, Any]:
        return {}
