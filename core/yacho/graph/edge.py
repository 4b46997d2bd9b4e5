"""
Edge Protocol - How nodes connect in a graph.

Edges define:
1. Source and target nodes
2. A guard deciding whether the edge is taken for a node's output
3. An optional transform turning that output into the target's input

Edges leaving one node are evaluated in declaration order and the first one
whose guard holds wins. There is no priority and no backtracking, so two
edges that both match are resolved by whichever was declared first.

Edge Types:
- always: Always traverse after the source completes
- on_tool_call: The output is a model response that requests tool calls
- on_assistant_message: The output is a model response with prose only
- conditional: Traverse when ``predicate(ctx, output)`` holds

A predicate may also be attached to on_tool_call / on_assistant_message edges;
both the condition and the predicate must then hold.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from yacho.llm.provider import LLMResponse

if TYPE_CHECKING:
    from yacho.graph.context import RunContext

FINISH_NODE = "__finish__"

# Called as predicate(ctx, output) and transform(ctx, output)
EdgePredicate = Callable[[Any, Any], bool]
EdgeTransform = Callable[[Any, Any], Any]


class EdgeCondition(StrEnum):
    """When an edge should be traversed."""

    ALWAYS = "always"
    ON_TOOL_CALL = "on_tool_call"
    ON_ASSISTANT_MESSAGE = "on_assistant_message"
    CONDITIONAL = "conditional"


class EdgeSpec(BaseModel):
    """
    Specification for an edge between nodes.

    Examples:
        # Dispatch whatever tools the model asked for
        EdgeSpec(
            id="evaluate-to-execute",
            source="evaluate_bird",
            target="execute_tool",
            condition=EdgeCondition.ON_TOOL_CALL,
            transform=lambda ctx, response: response.tool_calls,
        )

        # Finish only once at least one tool has been used
        EdgeSpec(
            id="evaluate-to-finish",
            source="evaluate_bird",
            target=FINISH_NODE,
            condition=EdgeCondition.ON_ASSISTANT_MESSAGE,
            predicate=lambda ctx, response: ctx.tool_call_count > 0,
            transform=lambda ctx, response: response.content,
        )
    """

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID, or FINISH_NODE")

    condition: EdgeCondition = EdgeCondition.ALWAYS
    predicate: EdgePredicate | None = Field(
        default=None,
        description="Extra guard evaluated as predicate(ctx, output)",
    )
    transform: EdgeTransform | None = Field(
        default=None,
        description="Maps the source output to the target input as transform(ctx, output)",
    )

    description: str = ""

    def should_traverse(self, ctx: RunContext, output: Any) -> bool:
        """
        Determine if this edge should be traversed.

        Args:
            ctx: Run context of the current invocation
            output: Value produced by the source node

        Returns:
            True if the edge should be traversed
        """
        if self.condition == EdgeCondition.ALWAYS:
            matched = True
        elif self.condition == EdgeCondition.ON_TOOL_CALL:
            matched = isinstance(output, LLMResponse) and output.has_tool_calls
        elif self.condition == EdgeCondition.ON_ASSISTANT_MESSAGE:
            matched = isinstance(output, LLMResponse) and not output.has_tool_calls
        elif self.condition == EdgeCondition.CONDITIONAL:
            matched = self.predicate is not None
        else:
            matched = False

        if matched and self.predicate is not None:
            matched = bool(self.predicate(ctx, output))
        return matched

    def map_value(self, ctx: RunContext, output: Any) -> Any:
        """Apply the edge transform, if any, to produce the target's input."""
        if self.transform is None:
            return output
        return self.transform(ctx, output)


class GraphSpec(BaseModel):
    """
    Complete specification of an agent graph.

    Definitions are built once and reused across runs; everything a run
    mutates lives on the RunContext, never on the spec.

    Example:
        GraphSpec(
            id="bird-identification",
            entry_node="update_system_prompt",
            nodes=[...],
            edges=[...],
            exit_tool_name="__exit__",
        )
    """

    id: str
    entry_node: str = Field(description="ID of the first node to execute")

    # Components
    nodes: list[Any] = Field(  # NodeProtocol, but avoiding circular import
        default_factory=list, description="All nodes"
    )
    edges: list[EdgeSpec] = Field(default_factory=list, description="All edges, in order")

    # Execution limits
    max_steps: int = Field(default=50, description="Maximum node executions per run")

    # Tool name that finishes the run as soon as the model calls it
    exit_tool_name: str | None = None
    exit_value: str = "Chat finished"

    description: str = ""

    def get_node(self, node_id: str) -> Any | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_outgoing_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges leaving a node, in declaration order."""
        return [e for e in self.edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges entering a node."""
        return [e for e in self.edges if e.target == node_id]

    def validate(self) -> list[str]:
        """Validate the graph structure. Returns a list of problems (empty if valid)."""
        errors = []

        if not self.get_node(self.entry_node):
            errors.append(f"Entry node '{self.entry_node}' not found")

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id == FINISH_NODE:
                errors.append(f"Node id '{FINISH_NODE}' is reserved")
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        seen_edges: set[str] = set()
        for edge in self.edges:
            if edge.id in seen_edges:
                errors.append(f"Duplicate edge ID: '{edge.id}'")
            seen_edges.add(edge.id)
            if not self.get_node(edge.source):
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if edge.target != FINISH_NODE and not self.get_node(edge.target):
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")
            if edge.condition == EdgeCondition.CONDITIONAL and edge.predicate is None:
                errors.append(f"Conditional edge '{edge.id}' has no predicate")

        # Reachability from the entry node
        reachable: set[str] = set()
        to_visit = [self.entry_node]
        while to_visit:
            current = to_visit.pop()
            if current in reachable:
                continue
            reachable.add(current)
            if current == FINISH_NODE:
                continue
            for edge in self.get_outgoing_edges(current):
                to_visit.append(edge.target)

        for node in self.nodes:
            if node.id not in reachable:
                errors.append(f"Node '{node.id}' is unreachable from entry")
            elif not self.get_outgoing_edges(node.id):
                errors.append(f"Node '{node.id}' has no outgoing edge")

        if FINISH_NODE not in reachable:
            errors.append("Finish is not reachable from entry")

        return errors
