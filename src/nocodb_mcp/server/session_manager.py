"""SSE session manager for the NocoDB MCP server."""

from __future__ import annotations

import contextlib
import time
from collections.abc import AsyncIterator
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup, TaskStatus
from sse_starlette import ServerSentEvent

from nocodb_mcp.exceptions import SessionNotFound, TransportWriteFailure
from nocodb_mcp.server.lowlevel import RequestContext, Server
from nocodb_mcp.server.session import Session
from nocodb_mcp.types import JSONRPCMessage, JSONRPCRequest, JSONRPCResponse
from nocodb_mcp.utilities.logging import get_logger

logger = get_logger(__name__)

DEFAULT_KEEPALIVE_INTERVAL = 25.0
KEEPALIVE_COMMENT = "keep-alive"


class SessionManager:
    """
    Owns every open SSE session: the registry, the per-session liveness timers
    and the write side of each session's frame stream.

    A session exists from :meth:`open_session` until the first of: the HTTP
    stream disconnects, a write to it fails, or the manager shuts down. Nothing
    is persisted; a restart forgets every session.

    Important: the instance cannot be reused after its run() context has
    completed. Create a new instance if you need to restart.

    Args:
        server: The protocol dispatcher that handles routed messages.
        keepalive_interval: Seconds between keep-alive comment frames.
        stream_buffer_size: Frames buffered per session before writers wait
            for the stream reader.
        send_timeout: Seconds a write may wait on a full buffer before it is
            treated as a write failure. None waits forever.
    """

    def __init__(
        self,
        server: Server,
        *,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        stream_buffer_size: int = 100,
        send_timeout: float | None = 10.0,
    ):
        if keepalive_interval <= 0:
            raise ValueError("keepalive_interval must be positive")
        self.server = server
        self.keepalive_interval = keepalive_interval
        self.stream_buffer_size = stream_buffer_size
        self.send_timeout = send_timeout

        self._registry_lock = anyio.Lock()
        self._sessions: dict[str, Session] = {}

        # The task group will be set during lifespan
        self._task_group: TaskGroup | None = None
        self._run_lock = anyio.Lock()
        self._has_started = False

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """
        Run the session manager with proper lifecycle management.

        This creates the task group that owns every liveness timer. On exit all
        remaining sessions are closed.

        Use this in the lifespan context manager of your Starlette app:

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            async with session_manager.run():
                yield
        """
        async with self._run_lock:
            if self._has_started:
                raise RuntimeError(
                    "SessionManager .run() can only be called once per instance. "
                    "Create a new instance if you need to run again."
                )
            self._has_started = True

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("SSE session manager started")
            try:
                yield
            finally:
                logger.info("SSE session manager shutting down (%d open sessions)", len(self._sessions))
                with anyio.CancelScope(shield=True):
                    for session_id in list(self._sessions):
                        await self.close_session(session_id)
                tg.cancel_scope.cancel()
                self._task_group = None

    async def open_session(self) -> Session:
        """Register a new session and start its liveness timer."""
        if self._task_group is None:
            raise RuntimeError("Task group is not initialized. Make sure to use run().")

        async with self._registry_lock:
            session_id = uuid4().hex
            while session_id in self._sessions:
                session_id = uuid4().hex
            session = Session.create(
                session_id,
                buffer_size=self.stream_buffer_size,
                send_timeout=self.send_timeout,
            )
            self._sessions[session_id] = session

        await self._task_group.start(self._run_keepalive, session)
        logger.info("Session %s opened", session_id)
        return session

    async def emit(self, session_id: str, frame: ServerSentEvent) -> bool:
        """Write a frame to a session's stream.

        Never raises. Returns False when the session is gone or the write
        failed; a failed write also closes the session.
        """
        session = self._sessions.get(session_id)
        if session is None or session.closed:
            logger.debug("Dropping frame for closed session %s", session_id)
            return False

        try:
            await session.send(frame)
        except TransportWriteFailure as e:
            logger.warning("%s; closing session", e)
            await self.close_session(session_id)
            return False
        return True

    async def route_request(self, session_id: str, message: JSONRPCMessage) -> JSONRPCResponse | None:
        """Dispatch a message received for ``session_id``.

        Responses are written to the session stream as ``message`` events and
        also returned to the caller. Notifications return None.

        Raises:
            SessionNotFound: no open session has this id. Nothing is dispatched.
        """
        session = self._sessions.get(session_id)
        if session is None or session.closed:
            raise SessionNotFound(session_id)

        request_id = message.id if isinstance(message, JSONRPCRequest) else None
        logger.debug("Routing %s to session %s", getattr(message, "method", "response"), session_id)
        ctx = RequestContext(session_id=session_id, request_id=request_id, session=session)
        response = await self.server.handle_message(ctx, message)
        if response is None:
            return None

        frame = ServerSentEvent(data=response.model_dump_json(by_alias=True, exclude_none=True), event="message")
        if not await self.emit(session_id, frame):
            logger.info("Session %s went away before response %s could be streamed", session_id, request_id)
        return response

    async def close_session(self, session_id: str) -> None:
        """Cancel the timer, unregister and close the stream. Idempotent."""
        with anyio.CancelScope(shield=True):
            async with self._registry_lock:
                session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.close()
        logger.info("Session %s closed after %.1fs", session_id, time.monotonic() - session.created_at)

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def _run_keepalive(
        self,
        session: Session,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        with session.keepalive_scope:
            task_status.started()
            while True:
                await anyio.sleep(self.keepalive_interval)
                if not await self.emit(session.id, ServerSentEvent(comment=KEEPALIVE_COMMENT)):
                    logger.debug("Keep-alive for session %s stopped", session.id)
                    return
