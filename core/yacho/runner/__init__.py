"""Tool registry and dispatcher."""

from yacho.runner.tool_registry import RegisteredTool, ToolRegistry, tool

__all__ = ["ToolRegistry", "RegisteredTool", "tool"]
