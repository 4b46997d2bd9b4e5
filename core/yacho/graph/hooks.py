"""Execution observers: ordered hooks invoked synchronously after engine steps.

Observers are registered on the RunContext as a plain list and called in that
order. Hooks run inline on the run's task, so an observer that raises aborts
the run like any other node failure.

Usage::

    class CountingObserver(ExecutionObserver):
        def __init__(self):
            self.nodes = []

        def on_after_node(self, ctx, node_id, output):
            self.nodes.append(node_id)

    ctx = RunContext(..., observers=[LoggingObserver(), CountingObserver()])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from yacho.graph.context import RunContext
    from yacho.llm.provider import LLMResponse, ToolCall

logger = logging.getLogger(__name__)


class ExecutionObserver:
    """Base observer. Every hook is a no-op; override the ones you need."""

    def on_after_node(self, ctx: RunContext, node_id: str, output: Any) -> None:
        """Called after a node returns, before edge selection."""

    def on_after_llm_call(
        self,
        ctx: RunContext,
        messages: list[dict[str, Any]],
        response: LLMResponse,
    ) -> None:
        """Called after every model call with the prompt that was sent."""

    def on_tool_call(self, ctx: RunContext, tool_call: ToolCall, args: dict[str, Any]) -> None:
        """Called after a tool call's arguments validate, right before it executes."""

    def on_finish(self, ctx: RunContext, result: Any) -> None:
        """Called once when the outermost graph reaches Finish."""


def _preview(value: Any, limit: int = 300) -> str:
    text = value if isinstance(value, str) else repr(value)
    return text if len(text) <= limit else text[:limit] + "..."


class LoggingObserver(ExecutionObserver):
    """Logs every engine step at DEBUG level."""

    def on_after_node(self, ctx: RunContext, node_id: str, output: Any) -> None:
        logger.debug(
            "Node %s finished: %s",
            node_id,
            _preview(output),
            extra={"event": "node_complete", "node_id": node_id},
        )

    def on_after_llm_call(
        self,
        ctx: RunContext,
        messages: list[dict[str, Any]],
        response: LLMResponse,
    ) -> None:
        for message in messages:
            logger.debug("  [%s] %s", message.get("role"), _preview(message.get("content")))
        logger.debug(
            "Model replied (%d tool calls): %s",
            len(response.tool_calls),
            _preview(response.content),
            extra={
                "event": "llm_call",
                "model": response.model,
                "tokens_used": response.input_tokens + response.output_tokens,
            },
        )

    def on_tool_call(self, ctx: RunContext, tool_call: ToolCall, args: dict[str, Any]) -> None:
        logger.debug(
            "Tool call %s(%s)",
            tool_call.name,
            _preview(args),
            extra={"event": "tool_call", "tool_name": tool_call.name},
        )

    def on_finish(self, ctx: RunContext, result: Any) -> None:
        logger.debug("Run finished: %s", _preview(result), extra={"event": "run_finish"})
