"""
Node Protocol - The building block of agent graphs.

A node takes the value produced by the previous step, does its work (talk to
the model, dispatch tools, rewrite the prompt) and returns the value handed to
the edge guards. Nodes hold no per-run state; anything a run accumulates is
kept on the RunContext.

Node Types:
- FunctionNode: wraps a plain (sync or async) function ``func(ctx, value)``
- SubgraphNode: runs a nested GraphSpec with the same RunContext and returns
  the value that reached its Finish
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from yacho.graph.context import RunContext
    from yacho.graph.edge import GraphSpec

NodeFunc = Callable[["RunContext", Any], Any | Awaitable[Any]]


class NodeProtocol(ABC):
    """Interface all nodes implement."""

    id: str
    description: str = ""

    @abstractmethod
    async def execute(self, ctx: RunContext, value: Any) -> Any:
        """
        Execute this node.

        Args:
            ctx: Run context (prompt session, tools, chat, counters)
            value: Input produced by the previous node and edge transform

        Returns:
            The output value used for edge selection
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FunctionNode(NodeProtocol):
    """A node backed by a function taking ``(ctx, value)``."""

    def __init__(self, id: str, func: NodeFunc, description: str = "") -> None:
        self.id = id
        self.func = func
        self.description = description or (func.__doc__ or "").strip().split("\n")[0]

    async def execute(self, ctx: RunContext, value: Any) -> Any:
        result = self.func(ctx, value)
        if inspect.isawaitable(result):
            result = await result
        return result


class SubgraphNode(NodeProtocol):
    """A node that executes a nested graph on the caller's RunContext."""

    def __init__(self, id: str, graph: GraphSpec, description: str = "") -> None:
        self.id = id
        self.graph = graph
        self.description = description or graph.description

    async def execute(self, ctx: RunContext, value: Any) -> Any:
        from yacho.graph.executor import GraphExecutor

        return await GraphExecutor().walk(self.graph, value, ctx)


def node(id: str | None = None, description: str = "") -> Callable[[NodeFunc], FunctionNode]:
    """
    Decorator turning a function into a FunctionNode.

    Usage:
        @node("build_final_prompt")
        def build_final_prompt(ctx, value):
            ctx.session.add_user_message(FINAL_PROMPT)
            return value
    """

    def decorator(func: NodeFunc) -> FunctionNode:
        return FunctionNode(id or func.__name__, func, description)

    return decorator
