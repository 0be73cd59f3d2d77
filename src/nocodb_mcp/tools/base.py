from __future__ import annotations as _annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from nocodb_mcp import types
from nocodb_mcp.exceptions import InvalidParams, NocoMCPError, ToolError
from nocodb_mcp.utilities.func_metadata import FuncMetadata, func_metadata


class Tool(BaseModel):
    """Internal tool registration info."""

    model_config = ConfigDict(frozen=True)

    fn: Callable[..., Any] = Field(exclude=True)
    name: str = Field(description="Name of the tool")
    description: str = Field(description="Description of what the tool does")
    parameters: dict[str, Any] = Field(description="JSON schema for tool parameters")
    fn_metadata: FuncMetadata = Field(
        description="Metadata about the function including a pydantic model for tool arguments"
    )
    is_async: bool = Field(description="Whether the tool is async")

    @classmethod
    def from_function(
        cls,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
    ) -> Tool:
        """Create a Tool from a function."""
        func_name = name or fn.__name__

        if func_name == "<lambda>":
            raise ValueError("You must provide a name for lambda functions")

        func_doc = inspect.cleandoc(description or fn.__doc__ or "")
        is_async = _is_async_callable(fn)

        func_arg_metadata = func_metadata(fn)
        parameters = func_arg_metadata.arg_model.model_json_schema(by_alias=True)

        return cls(
            fn=fn,
            name=func_name,
            description=func_doc,
            parameters=parameters,
            fn_metadata=func_arg_metadata,
            is_async=is_async,
        )

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, input_schema=self.parameters)

    async def run(self, arguments: dict[str, Any]) -> Any:
        """Run the tool with arguments.

        Argument validation failures raise InvalidParams. Errors from this
        package propagate as they are; anything else is wrapped in ToolError.
        """
        try:
            return await self.fn_metadata.call_fn_with_arg_validation(
                self.fn,
                self.is_async,
                arguments,
                None,
            )
        except pydantic.ValidationError as e:
            raise InvalidParams(f"Invalid arguments for tool {self.name}: {e}", data=_error_locations(e)) from e
        except NocoMCPError:
            raise
        except Exception as e:
            raise ToolError(f"Error executing tool {self.name}: {e}") from e


def _error_locations(error: pydantic.ValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(err["loc"]), "msg": err["msg"]} for err in error.errors(include_url=False)]


def _is_async_callable(obj: Any) -> bool:
    while isinstance(obj, functools.partial):
        obj = obj.func

    return inspect.iscoroutinefunction(obj) or (
        callable(obj) and inspect.iscoroutinefunction(getattr(obj, "__call__", None))
    )
