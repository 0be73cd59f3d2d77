"""Wire the tool registry into the protocol dispatcher."""

import pydantic

from nocodb_mcp.exceptions import InvalidParams, ToolCallError
from nocodb_mcp.server.lowlevel import RequestContext, Server
from nocodb_mcp.tools.tool_manager import ToolManager, error_result
from nocodb_mcp.types import CallToolRequestParams, CallToolResult, JSONRPCRequest, ListToolsResult


def register_tool_handlers(server: Server, tool_manager: ToolManager) -> None:
    """Register ``tools/list`` and ``tools/call`` on ``server``."""

    @server.request_handler("tools/list")
    async def list_tools(ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
        return ListToolsResult(tools=[tool.to_mcp_tool() for tool in tool_manager.list_tools()])

    @server.request_handler("tools/call")
    async def call_tool(ctx: RequestContext, request: JSONRPCRequest) -> CallToolResult:
        try:
            params = CallToolRequestParams.model_validate(request.params or {})
        except pydantic.ValidationError as e:
            raise InvalidParams(f"Invalid tools/call params: {e}") from e

        try:
            return await tool_manager.invoke(params.name, params.arguments)
        except ToolCallError as e:
            return error_result(str(e))
