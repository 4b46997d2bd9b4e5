"""
Graph Executor - Runs agent graphs.

The executor:
1. Validates the GraphSpec
2. Starting at the entry node, executes one node at a time on the current value
3. Finishes immediately if the node's output calls the graph's exit tool
4. Otherwise follows the first outgoing edge whose guard holds
5. Returns an ExecutionResult once the Finish node is reached

Nodes run sequentially on the caller's task. A node may suspend for as long as
it likes (model calls, waiting for the user); nothing else in the executor
holds a lock while it does. The executor never retries a failed node.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from yacho.errors import (
    GraphStuckError,
    GraphValidationError,
    NodeExecutionError,
    RunCancelledError,
    StepLimitExceededError,
    YachoError,
)
from yacho.graph.context import RunContext
from yacho.graph.edge import FINISH_NODE, GraphSpec
from yacho.llm.provider import LLMResponse
from yacho.observability import set_trace_context

RunStatus = Literal["completed", "failed", "cancelled"]


@dataclass
class ExecutionResult:
    """Result of executing a graph."""

    status: RunStatus
    output: Any = None
    error: YachoError | None = None
    steps_executed: int = 0
    total_tokens: int = 0
    total_latency_ms: int = 0
    path: list[str] = field(default_factory=list)  # Node IDs traversed

    @property
    def success(self) -> bool:
        return self.status == "completed"

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"


class GraphExecutor:
    """
    Executes agent graphs.

    Example:
        executor = GraphExecutor()
        ctx = RunContext(llm=llm, tools=registry, chat=chat)

        result = await executor.execute(graph, "I saw a small green bird", ctx)
        if result.success:
            print(result.output)
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    async def execute(self, graph: GraphSpec, input_value: Any, ctx: RunContext) -> ExecutionResult:
        """
        Execute a graph to completion.

        Run-level failures are returned on ``ExecutionResult.error``, never
        raised, so the caller's chat and prompt history stay intact.

        Args:
            graph: The graph specification
            input_value: Value handed to the entry node
            ctx: Fresh run context for this invocation

        Returns:
            ExecutionResult with status, output and the path taken
        """
        set_trace_context(run_id=ctx.run_id, graph_id=graph.id)
        start = time.monotonic()
        self.logger.info(f"🚀 Starting run {ctx.run_id} on graph '{graph.id}'")
        self.logger.info(f"   Entry node: {graph.entry_node}")

        status: RunStatus
        output: Any = None
        error: YachoError | None = None

        try:
            output = await self.walk(graph, input_value, ctx)
            status = "completed"
            ctx.notify("on_finish", output)
        except (asyncio.CancelledError, RunCancelledError) as e:
            self.logger.info("⏹ Run cancelled")
            status = "cancelled"
            error = e if isinstance(e, RunCancelledError) else RunCancelledError("Run was cancelled")
        except YachoError as e:
            self.logger.error(f"✗ Run failed: {e}")
            status = "failed"
            error = e
        except Exception as e:
            # Raised by an on_finish observer
            self.logger.exception("✗ Run failed after reaching Finish")
            status = "failed"
            error = NodeExecutionError(FINISH_NODE, e)

        latency_ms = int((time.monotonic() - start) * 1000)
        if status == "completed":
            self.logger.info("✓ Execution complete!")
            self.logger.info(f"   Steps: {ctx.steps_executed}")
            self.logger.info(f"   Path: {' → '.join(ctx.path)}")
            self.logger.info(f"   Total tokens: {ctx.total_tokens}")

        return ExecutionResult(
            status=status,
            output=output,
            error=error,
            steps_executed=ctx.steps_executed,
            total_tokens=ctx.total_tokens,
            total_latency_ms=latency_ms,
            path=list(ctx.path),
        )

    async def walk(self, graph: GraphSpec, value: Any, ctx: RunContext) -> Any:
        """
        Drive ``graph`` from its entry node to Finish and return the final value.

        Raises the run's error instead of wrapping it; SubgraphNode calls this
        directly so that a nested failure aborts the enclosing run.
        """
        problems = graph.validate()
        if problems:
            raise GraphValidationError(graph.id, problems)

        current = graph.entry_node
        while current != FINISH_NODE:
            if ctx.steps_executed >= graph.max_steps:
                raise StepLimitExceededError(graph.id, graph.max_steps)

            node = graph.get_node(current)
            ctx.steps_executed += 1
            ctx.path.append(current)
            set_trace_context(node_id=current)
            self.logger.info(f"▶ Step {ctx.steps_executed}: {current}")

            try:
                value = await node.execute(ctx, value)
                ctx.notify("on_after_node", current, value)

                if self._calls_exit_tool(graph, value):
                    self.logger.info(f"   → Exit tool '{graph.exit_tool_name}' called, finishing")
                    return graph.exit_value

                current, value = self._follow_edges(graph, current, value, ctx)
            except (YachoError, asyncio.CancelledError):
                raise
            except Exception as e:
                raise NodeExecutionError(current, e) from e
            self.logger.info(f"   → Next: {current}")

        return value

    @staticmethod
    def _calls_exit_tool(graph: GraphSpec, value: Any) -> bool:
        if graph.exit_tool_name is None or not isinstance(value, LLMResponse):
            return False
        return any(call.name == graph.exit_tool_name for call in value.tool_calls)

    def _follow_edges(
        self,
        graph: GraphSpec,
        current_node_id: str,
        value: Any,
        ctx: RunContext,
    ) -> tuple[str, Any]:
        """Pick the first matching edge in declaration order."""
        for edge in graph.get_outgoing_edges(current_node_id):
            if edge.should_traverse(ctx, value):
                self.logger.debug(f"   Edge '{edge.id}' matched")
                return edge.target, edge.map_value(ctx, value)
        raise GraphStuckError(current_node_id, value)
