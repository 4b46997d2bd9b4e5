"""Tool registration and dispatch for agent runs."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError, create_model

from yacho.chat.events import ToolCallLogEvent
from yacho.errors import ArgumentValidationError, UnknownToolError, YachoError
from yacho.llm.provider import Tool, ToolCall, ToolResult

if TYPE_CHECKING:
    from yacho.graph.context import RunContext

logger = logging.getLogger(__name__)

ToolExecutor = Callable[[dict[str, Any]], Any]


@dataclass
class RegisteredTool:
    """A tool with its executor function and argument model."""

    tool: Tool
    executor: ToolExecutor
    args_model: type[BaseModel] | None = None


class ToolRegistry:
    """
    Maps tool names to executable tools and dispatches model tool calls.

    Executors take the validated argument dict and return a string (or any
    JSON-serializable value). They may be coroutines and may suspend for as
    long as they need, e.g. while waiting for the user.

    Example:
        registry = ToolRegistry()

        @tool(description="Look up a bird by its Japanese name")
        def lookup_bird(name: str) -> str:
            ...

        registry.register_function(lookup_bird)
        result = await registry.dispatch(tool_call, ctx)
    """

    def __init__(self):
        self._tools: dict[str, RegisteredTool] = {}

    def register(
        self,
        name: str,
        tool: Tool,
        executor: ToolExecutor,
        args_model: type[BaseModel] | None = None,
    ) -> None:
        """
        Register a single tool with its executor.

        Args:
            name: Tool name (must match tool.name)
            tool: Tool definition shown to the model
            executor: Function that takes the validated argument dict
            args_model: Pydantic model the arguments are validated against.
                When omitted, arguments only need to be a JSON object.
        """
        if name != tool.name:
            raise ValueError(f"Tool name '{name}' does not match definition '{tool.name}'")
        if name in self._tools:
            logger.warning(f"Replacing already registered tool '{name}'")
        self._tools[name] = RegisteredTool(tool=tool, executor=executor, args_model=args_model)

    def register_function(
        self,
        func: Callable,
        name: str | None = None,
        description: str | None = None,
    ) -> None:
        """
        Register a function as a tool, generating the Tool definition and
        argument model from its signature.

        Args:
            func: Function to register (sync or async)
            name: Tool name (defaults to @tool metadata, then the function name)
            description: Tool description (defaults to @tool metadata, then the docstring)
        """
        metadata = getattr(func, "_tool_metadata", {})
        tool_name = name or metadata.get("name") or func.__name__
        tool_desc = description or metadata.get("description") or func.__doc__ or f"Execute {tool_name}"

        fields: dict[str, Any] = {}
        for param_name, param in inspect.signature(func).parameters.items():
            if param_name in ("self", "cls"):
                continue
            annotation = Any if param.annotation is inspect.Parameter.empty else param.annotation
            default = ... if param.default is inspect.Parameter.empty else param.default
            fields[param_name] = (annotation, default)

        args_model = create_model(f"{tool_name}_args", **fields)
        schema = args_model.model_json_schema()
        tool = Tool(
            name=tool_name,
            description=tool_desc.strip(),
            parameters={
                "type": "object",
                "properties": schema.get("properties", {}),
                "required": schema.get("required", []),
            },
        )

        def executor(inputs: dict[str, Any]) -> Any:
            return func(**inputs)

        self.register(tool_name, tool, executor, args_model=args_model)

    def get_tools(self) -> list[Tool]:
        """Get all registered Tool definitions, in registration order."""
        return [rt.tool for rt in self._tools.values()]

    def get_registered_names(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def _validate_arguments(self, registered: RegisteredTool, call: ToolCall) -> dict[str, Any]:
        try:
            raw = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ArgumentValidationError(call.name, [f"arguments are not valid JSON: {e}"]) from e
        if not isinstance(raw, dict):
            raise ArgumentValidationError(call.name, ["arguments must be a JSON object"])

        if registered.args_model is None:
            return raw
        try:
            return registered.args_model.model_validate(raw).model_dump()
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ArgumentValidationError(call.name, errors) from e

    async def dispatch(self, call: ToolCall, ctx: RunContext) -> ToolResult:
        """
        Execute one tool call requested by the model.

        Appends a ToolCallLog chat event before anything else, so the log
        entry always precedes whatever the tool itself adds to the chat.

        Raises:
            UnknownToolError: No tool with that name is registered
            ArgumentValidationError: The arguments do not match the tool's schema
        """
        ctx.chat.append(ToolCallLogEvent(f"Used tool: {call.name}", tool_name=call.name))

        registered = self._tools.get(call.name)
        if registered is None:
            raise UnknownToolError(call.name, self.get_registered_names())

        args = self._validate_arguments(registered, call)
        ctx.tool_call_count += 1
        ctx.notify("on_tool_call", call, args)
        logger.info(f"🔧 Tool call: {call.name}", extra={"tool_name": call.name})

        try:
            result = registered.executor(args)
            if inspect.isawaitable(result):
                result = await result
        except YachoError:
            raise
        except Exception as e:
            logger.warning(f"⚠ Tool '{call.name}' raised: {e}", extra={"tool_name": call.name})
            return ToolResult(
                tool_call_id=call.id,
                tool_name=call.name,
                content=json.dumps({"error": str(e)}),
                is_error=True,
            )

        if isinstance(result, ToolResult):
            return result
        return ToolResult(
            tool_call_id=call.id,
            tool_name=call.name,
            content=result if isinstance(result, str) else json.dumps(result, ensure_ascii=False),
        )

    async def dispatch_all(self, calls: list[ToolCall], ctx: RunContext) -> list[ToolResult]:
        """Dispatch calls one after another, in the order the model listed them."""
        results = []
        for call in calls:
            results.append(await self.dispatch(call, ctx))
        return results


def tool(
    description: str | None = None,
    name: str | None = None,
) -> Callable:
    """
    Decorator to mark a function as a tool.

    Usage:
        @tool(description="Look up a bird by its Japanese name")
        def lookup_bird(name: str) -> str:
            return "..."
    """

    def decorator(func: Callable) -> Callable:
        func._tool_metadata = {
            "name": name or func.__name__,
            "description": description or func.__doc__,
        }
        return func

    return decorator
