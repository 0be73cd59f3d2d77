"""Custom exceptions for the NocoDB MCP server."""

from typing import Any

from nocodb_mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData


class NocoMCPError(Exception):
    """Base error for the NocoDB MCP server."""


class ConfigurationError(NocoMCPError):
    """Required configuration is missing or invalid."""


class SessionNotFound(NocoMCPError):
    """A request named a session id that is not currently open."""

    def __init__(self, session_id: str):
        super().__init__(f"No transport found for sessionId: {session_id}")
        self.session_id = session_id


class TransportWriteFailure(NocoMCPError):
    """Writing a frame to a session stream failed."""

    def __init__(self, session_id: str, reason: str = "stream closed"):
        super().__init__(f"Failed to write to session {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class ToolError(NocoMCPError):
    """Error in tool operations."""


class ToolCallError(NocoMCPError):
    """A tools/call request could not be executed as asked.

    Carries the JSON-RPC error code that best describes the problem.
    """

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any | None = None):
        super().__init__(message)
        self.data = data

    @property
    def error(self) -> ErrorData:
        return ErrorData(code=self.code, message=str(self), data=self.data)


class UnknownTool(ToolCallError):
    code = METHOD_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidParams(ToolCallError):
    code = INVALID_PARAMS


class MethodNotFound(ToolCallError):
    """The JSON-RPC method has no registered handler."""

    code = METHOD_NOT_FOUND


class NocoDBError(NocoMCPError):
    """Base error for failures talking to the NocoDB backend."""


class BackendError(NocoDBError):
    """The NocoDB API rejected a request or could not be reached.

    Attributes:
        status_code: HTTP status returned by NocoDB, or None for transport
            level failures such as timeouts.
        response_body: decoded error payload returned by NocoDB, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, response_body: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TableNotFound(NocoDBError):
    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' not found")
        self.table_name = table_name


class InvalidSignature(Exception):
    """Invalid signature for use as a tool."""
