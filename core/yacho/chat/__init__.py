"""User-visible chat history: event union and append-only session."""

from yacho.chat.events import (
    AssistantEvent,
    ChatEvent,
    StructuredEvent,
    ToolCallLogEvent,
    UserEvent,
    UserImageEvent,
    render_event,
)
from yacho.chat.session import ChatSession

__all__ = [
    "ChatEvent",
    "UserEvent",
    "UserImageEvent",
    "AssistantEvent",
    "ToolCallLogEvent",
    "StructuredEvent",
    "render_event",
    "ChatSession",
]
