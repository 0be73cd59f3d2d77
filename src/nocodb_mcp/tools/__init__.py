from .base import Tool
from .nocodb import register_nocodb_tools
from .tool_manager import ToolManager

__all__ = ["Tool", "ToolManager", "register_nocodb_tools"]
