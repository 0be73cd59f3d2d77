from __future__ import annotations as _annotations

from collections.abc import Callable
from typing import Any

import pydantic_core

from nocodb_mcp.exceptions import NocoDBError, ToolError, UnknownTool
from nocodb_mcp.tools.base import Tool
from nocodb_mcp.types import CallToolResult, TextContent
from nocodb_mcp.utilities.logging import get_logger

logger = get_logger(__name__)

JSON_MIME_TYPE = "application/json"


class ToolManager:
    """Registry of the tools exposed to clients."""

    def __init__(
        self,
        warn_on_duplicate_tools: bool = True,
        *,
        tools: list[Tool] | None = None,
    ):
        self._tools: dict[str, Tool] = {}
        self.warn_on_duplicate_tools = warn_on_duplicate_tools
        for tool in tools or []:
            self._add_tool_internal(tool)

    def _add_tool_internal(self, tool: Tool) -> Tool:
        existing = self._tools.get(tool.name)
        if existing is not None:
            if self.warn_on_duplicate_tools:
                logger.warning(f"Tool already exists: {tool.name}")
            return existing
        self._tools[tool.name] = tool
        return tool

    def add_tool(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
    ) -> Tool:
        """Add a tool to the registry."""
        tool = Tool.from_function(fn, name=name, description=description)
        return self._add_tool_internal(tool)

    def get_tool(self, name: str) -> Tool | None:
        """Get tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools in registration order."""
        return list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool by name with arguments and return its raw result.

        Raises:
            UnknownTool: no tool is registered under ``name``.
            InvalidParams: the arguments do not match the tool's parameters.
            ToolError, NocoDBError: the tool itself failed.
        """
        tool = self.get_tool(name)
        if not tool:
            raise UnknownTool(name)

        return await tool.run(arguments)

    async def invoke(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Call a tool and package its outcome as tool result content.

        Failures of the tool itself come back as ``isError`` content rather than
        exceptions. UnknownTool and InvalidParams still propagate.
        """
        logger.debug("Calling tool %s", name)
        try:
            result = await self.call_tool(name, arguments or {})
        except (NocoDBError, ToolError) as e:
            logger.info("Tool %s failed: %s", name, e)
            return error_result(str(e))

        return CallToolResult(
            content=[TextContent(text=_to_json_text(result), mime_type=JSON_MIME_TYPE)],
        )


def _to_json_text(value: Any) -> str:
    return pydantic_core.to_json(value, fallback=str).decode()


def error_result(message: str) -> CallToolResult:
    """Build an ``isError`` tool result carrying ``{"error": message}``."""
    return CallToolResult(
        content=[TextContent(text=_to_json_text({"error": message}), mime_type=JSON_MIME_TYPE)],
        is_error=True,
    )
