"""Graph structures: nodes, edges, run context and the executor."""

from yacho.graph.context import RunContext
from yacho.graph.conversation import Message, PromptSession
from yacho.graph.edge import FINISH_NODE, EdgeCondition, EdgeSpec, GraphSpec
from yacho.graph.executor import ExecutionResult, GraphExecutor
from yacho.graph.hooks import ExecutionObserver, LoggingObserver
from yacho.graph.node import FunctionNode, NodeProtocol, SubgraphNode, node
from yacho.graph.structured import extract_structured, parse_structured
from yacho.graph.user_input import UserInputSlot

__all__ = [
    # Node
    "NodeProtocol",
    "FunctionNode",
    "SubgraphNode",
    "node",
    # Edge
    "EdgeSpec",
    "EdgeCondition",
    "GraphSpec",
    "FINISH_NODE",
    # Run state
    "RunContext",
    "PromptSession",
    "Message",
    "ExecutionObserver",
    "LoggingObserver",
    "UserInputSlot",
    # Structured output
    "extract_structured",
    "parse_structured",
    # Executor
    "GraphExecutor",
    "ExecutionResult",
]
