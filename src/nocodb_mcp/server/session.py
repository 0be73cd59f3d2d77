"""A single client connection bound to one long-lived event stream."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from sse_starlette import ServerSentEvent

from nocodb_mcp.exceptions import TransportWriteFailure
from nocodb_mcp.types import Implementation


@dataclass(eq=False)
class Session:
    """In-memory state of one open stream.

    Frames are written only through :meth:`send`, which serialises writers on
    ``write_lock`` so frames for one session keep their call order. The
    receive side of the stream belongs to the HTTP response serving the
    stream.
    """

    id: str
    send_stream: MemoryObjectSendStream[ServerSentEvent]
    frames: MemoryObjectReceiveStream[ServerSentEvent]
    send_timeout: float | None = None
    write_lock: anyio.Lock = field(default_factory=anyio.Lock)
    keepalive_scope: anyio.CancelScope = field(default_factory=anyio.CancelScope)
    created_at: float = field(default_factory=time.monotonic)
    closed: bool = False
    client_info: Implementation | None = None
    protocol_version: str | None = None

    @classmethod
    def create(cls, session_id: str, *, buffer_size: float = 100, send_timeout: float | None = None) -> Session:
        send_stream, receive_stream = anyio.create_memory_object_stream[ServerSentEvent](buffer_size)
        return cls(id=session_id, send_stream=send_stream, frames=receive_stream, send_timeout=send_timeout)

    async def send(self, frame: ServerSentEvent) -> None:
        """Write one frame to the stream.

        Raises:
            TransportWriteFailure: the stream is closed, its reader is gone, or
                the reader did not drain the buffer within ``send_timeout``.
        """
        async with self.write_lock:
            if self.closed:
                raise TransportWriteFailure(self.id, "session closed")
            try:
                with anyio.fail_after(self.send_timeout):
                    await self.send_stream.send(frame)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
                raise TransportWriteFailure(self.id, type(e).__name__) from e
            except TimeoutError as e:
                raise TransportWriteFailure(self.id, "write timed out") from e

    def close(self) -> None:
        """Stop the liveness timer and close the write side. Idempotent."""
        if self.closed:
            return
        self.closed = True
        self.keepalive_scope.cancel()
        self.send_stream.close()
