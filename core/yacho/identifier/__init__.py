"""
Bird identification agent.

Built on the graph engine: a fixed strategy graph, the human-input tool and
the BirdIdentification schema, wrapped in a chat-facing agent.
"""

from yacho.identifier.agent import BirdIdentificationAgent, ChatEventObserver
from yacho.identifier.graph import build_evaluate_bird_graph, build_identification_graph
from yacho.identifier.schemas import BirdIdentification
from yacho.identifier.tools import (
    ASK_USER_TOOL_NAME,
    EXIT_TOOL_NAME,
    AskUserTool,
    build_tool_registry,
)

__all__ = [
    "BirdIdentificationAgent",
    "ChatEventObserver",
    "BirdIdentification",
    "build_identification_graph",
    "build_evaluate_bird_graph",
    "build_tool_registry",
    "AskUserTool",
    "ASK_USER_TOOL_NAME",
    "EXIT_TOOL_NAME",
]
