"""Tools offered to the bird-identification model."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from yacho.graph.user_input import UserInputSlot
from yacho.llm.provider import Tool
from yacho.runner.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

ASK_USER_TOOL_NAME = "__ask_user_in_ui__"
EXIT_TOOL_NAME = "__exit__"
EXIT_VALUE = "Chat finished"


class AskUserArgs(BaseModel):
    message: str = Field(description="Message from the agent")


class AskUserTool:
    """
    Service tool, used by the agent to talk with the user.

    Execution blocks until the UI submits an answer to the shared
    UserInputSlot; the answer becomes the tool result.
    """

    name = ASK_USER_TOOL_NAME
    description = "Service tool, used by the agent to talk with user"

    def __init__(self, slot: UserInputSlot, timeout: float | None = None) -> None:
        self.slot = slot
        self.timeout = timeout

    def definition(self) -> Tool:
        schema = AskUserArgs.model_json_schema()
        return Tool(
            name=self.name,
            description=self.description,
            parameters={
                "type": "object",
                "properties": schema["properties"],
                "required": schema["required"],
            },
        )

    async def __call__(self, args: dict[str, Any]) -> str:
        logger.info(f"💬 Asking user: {args['message']}")
        answer = await self.slot.take(timeout=self.timeout)
        logger.info("💬 User answered")
        return answer


def _exit_tool_definition() -> Tool:
    return Tool(
        name=EXIT_TOOL_NAME,
        description="Service tool, used by the agent to end the conversation",
        parameters={"type": "object", "properties": {}, "required": []},
    )


def build_tool_registry(slot: UserInputSlot) -> ToolRegistry:
    """Registry with the human-input tool and the exit tool."""
    registry = ToolRegistry()
    ask_user = AskUserTool(slot)
    registry.register(ask_user.name, ask_user.definition(), ask_user, args_model=AskUserArgs)
    # The executor finishes the run on an exit call before dispatch; this entry is the fallback
    registry.register(EXIT_TOOL_NAME, _exit_tool_definition(), lambda args: EXIT_VALUE)
    return registry
