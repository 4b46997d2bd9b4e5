"""Chat event types shown to the user.

Defines a discriminated union of frozen dataclasses, one per kind of entry in
the user-visible chat history. Consumers match on the union exhaustively (see
render_event); adding a variant makes every non-exhaustive consumer fail type
checking via assert_never.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, assert_never

from pydantic import BaseModel


@dataclass(frozen=True)
class UserEvent:
    """Text typed by the user."""

    text: str
    type: Literal["user"] = "user"


@dataclass(frozen=True)
class UserImageEvent:
    """A photo sent by the user together with an optional caption."""

    image: bytes = field(repr=False)
    text: str = ""
    type: Literal["user_image"] = "user_image"


@dataclass(frozen=True)
class AssistantEvent:
    """Text from the assistant (answers, questions to the user, errors)."""

    text: str
    type: Literal["assistant"] = "assistant"


@dataclass(frozen=True)
class ToolCallLogEvent:
    """A tool was dispatched. Appended before the tool produces its result."""

    text: str
    tool_name: str = ""
    type: Literal["tool_call"] = "tool_call"


@dataclass(frozen=True)
class StructuredEvent:
    """A schema-validated identification result."""

    result: BaseModel
    type: Literal["structured"] = "structured"


# Discriminated union of all chat event types
ChatEvent = UserEvent | UserImageEvent | AssistantEvent | ToolCallLogEvent | StructuredEvent


def render_event(event: ChatEvent) -> str:
    """Plain-text rendering of one chat event, e.g. for terminals and logs."""
    match event:
        case UserEvent(text=text):
            return f"You: {text}"
        case UserImageEvent(image=image, text=text):
            caption = f" {text}" if text else ""
            return f"You: [image, {len(image)} bytes]{caption}"
        case AssistantEvent(text=text):
            return f"Yacho: {text}"
        case ToolCallLogEvent(text=text):
            return f"  ⚙ {text}"
        case StructuredEvent(result=result):
            fields = result.model_dump()
            lines = [f"  {name}: {value}" for name, value in fields.items()]
            return "Result:\n" + "\n".join(lines)
        case _:
            assert_never(event)
