"""
HTTP+SSE request router.

Two ASGI endpoints sit in front of the :class:`SessionManager`:

- ``GET /sse`` opens a session and streams its frames. The first frame is an
  ``endpoint`` event carrying the URL to POST messages to, for example
  ``/messages?sessionId=3f2a...``.
- ``POST /messages?sessionId=<id>`` carries one JSON-RPC message. Requests are
  answered twice: in the HTTP response body and as a ``message`` event on the
  session stream. Notifications get ``202 Accepted``.

Example usage:
```
    app = Starlette(
        routes=[
            Route("/sse", endpoint=SseEndpoint(manager, "/messages"), methods=["GET"]),
            Route("/messages", endpoint=MessageEndpoint(manager), methods=["POST"]),
        ],
        lifespan=lambda app: manager.run(),
    )
```
"""

from __future__ import annotations

import json
from typing import Any

import pydantic
from sse_starlette import EventSourceResponse, ServerSentEvent
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.types import Receive, Scope, Send

from nocodb_mcp.exceptions import SessionNotFound
from nocodb_mcp.server.http_body import DEFAULT_MAX_BODY_BYTES, BodyTooLargeError, read_request_body
from nocodb_mcp.server.session_manager import SessionManager
from nocodb_mcp.types import INVALID_REQUEST, PARSE_ERROR, ErrorData, JSONRPCErrorResponse, JSONRPCMessageAdapter
from nocodb_mcp.utilities.logging import get_logger

logger = get_logger(__name__)

SESSION_ID_PARAM = "sessionId"
SESSION_ID_PARAM_ALIAS = "session_id"

# Liveness frames come from the session manager; the response's own ping is
# pushed out of the way.
STREAM_PING_INTERVAL = 24 * 60 * 60
SSE_HEADERS = {"Cache-Control": "no-cache"}


class SseEndpoint:
    """
    ASGI application for the stream-open endpoint.
    """

    def __init__(self, session_manager: SessionManager, message_path: str):
        self.session_manager = session_manager
        self.message_path = message_path

    def endpoint_url(self, scope: Scope, session_id: str) -> str:
        root_path = scope.get("root_path", "")
        return f"{root_path}{self.message_path}?{SESSION_ID_PARAM}={session_id}"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        session = await self.session_manager.open_session()
        try:
            await self.session_manager.emit(
                session.id,
                ServerSentEvent(data=self.endpoint_url(scope, session.id), event="endpoint"),
            )
            response = EventSourceResponse(
                content=session.frames,
                headers=SSE_HEADERS,
                ping=STREAM_PING_INTERVAL,
            )
            await response(scope, receive, send)
            logger.debug("Stream for session %s ended", session.id)
        finally:
            session.frames.close()
            await self.session_manager.close_session(session.id)


class MessageEndpoint:
    """
    ASGI application for the correlated-message endpoint.
    """

    def __init__(self, session_manager: SessionManager, *, max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES):
        self.session_manager = session_manager
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.handle_post_message(request)
        await response(scope, receive, send)

    async def handle_post_message(self, request: Request) -> Response:
        session_id = request.query_params.get(SESSION_ID_PARAM) or request.query_params.get(SESSION_ID_PARAM_ALIAS)
        if not session_id:
            logger.warning("Received message without sessionId")
            return PlainTextResponse("sessionId is required", status_code=400)

        if session_id not in self.session_manager:
            logger.warning("Received message for unknown session %s", session_id)
            return PlainTextResponse(str(SessionNotFound(session_id)), status_code=400)

        try:
            body = await read_request_body(request, max_body_bytes=self.max_body_bytes)
        except BodyTooLargeError as e:
            return PlainTextResponse(str(e), status_code=413)

        try:
            raw: Any = json.loads(body)
        except ValueError as e:
            logger.debug("Unparseable message for session %s: %s", session_id, e)
            return _jsonrpc_error(PARSE_ERROR, "Parse error")

        try:
            message = JSONRPCMessageAdapter.validate_python(raw)
        except pydantic.ValidationError as e:
            logger.debug("Invalid JSON-RPC message for session %s: %s", session_id, e)
            request_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(request_id, int | str) or isinstance(request_id, bool):
                request_id = None
            return _jsonrpc_error(INVALID_REQUEST, "Invalid Request", request_id=request_id)

        try:
            response = await self.session_manager.route_request(session_id, message)
        except SessionNotFound as e:
            return PlainTextResponse(str(e), status_code=400)

        if response is None:
            return Response(status_code=202)
        return JSONResponse(response.model_dump(by_alias=True, exclude_none=True, mode="json"))


def _jsonrpc_error(code: int, message: str, *, request_id: int | str | None = None) -> JSONResponse:
    error = JSONRPCErrorResponse(id=request_id, error=ErrorData(code=code, message=message))
    return JSONResponse(error.model_dump(by_alias=True, mode="json"), status_code=400)
