"""PromptSession: the message history sent to the model during one run."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Literal

from yacho.llm.provider import ToolCall


@dataclass
class Message:
    """A single message in the prompt session.

    Attributes:
        seq: Monotonic sequence number.
        role: One of "user", "assistant", or "tool".
        content: Message text.
        tool_call_id: For tool messages, the id of the call being answered.
        tool_calls: Tool calls requested by an assistant message.
        structured: Parsed payload attached to a structured assistant answer.
        images: Data URLs sent alongside a user message.
        is_error: When True and role is "tool", ``to_llm_dict`` prepends "ERROR: ".
    """

    seq: int
    role: Literal["user", "assistant", "tool"]
    content: str
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    structured: dict[str, Any] | None = None
    images: list[str] = field(default_factory=list)
    is_error: bool = False

    def to_llm_dict(self) -> dict[str, Any]:
        """Convert to OpenAI-format message dict."""
        if self.role == "user":
            if not self.images:
                return {"role": "user", "content": self.content}
            parts: list[dict[str, Any]] = [{"type": "text", "text": self.content}]
            parts.extend({"type": "image_url", "image_url": {"url": url}} for url in self.images)
            return {"role": "user", "content": parts}

        if self.role == "assistant":
            d: dict[str, Any] = {"role": "assistant", "content": self.content}
            if self.tool_calls:
                d["tool_calls"] = [tc.to_openai_dict() for tc in self.tool_calls]
            return d

        # role == "tool"
        content = f"ERROR: {self.content}" if self.is_error else self.content
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "content": content,
        }


def image_data_url(image: bytes, mime_type: str | None = None) -> str:
    """Encode raw image bytes as a data URL, sniffing PNG/GIF/WebP and defaulting to JPEG."""
    if mime_type is None:
        if image.startswith(b"\x89PNG"):
            mime_type = "image/png"
        elif image.startswith(b"GIF8"):
            mime_type = "image/gif"
        elif image[:4] == b"RIFF" and image[8:12] == b"WEBP":
            mime_type = "image/webp"
        else:
            mime_type = "image/jpeg"
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class PromptSession:
    """Message history owned by one run.

    Append-only, except for the system prompt, which can be replaced as a
    whole. The system prompt is kept apart from the message list and emitted
    first by ``to_llm_messages``.
    """

    def __init__(self, system_prompt: str = "") -> None:
        self._system_prompt = system_prompt
        self._messages: list[Message] = []
        self._next_seq: int = 0

    # --- Properties --------------------------------------------------------

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def replace_system_prompt(self, new_prompt: str) -> None:
        """Replace the system prompt, keeping the rest of the history."""
        self._system_prompt = new_prompt

    @property
    def messages(self) -> list[Message]:
        """Return a defensive copy of the message list."""
        return list(self._messages)

    @property
    def message_count(self) -> int:
        return len(self._messages)

    @property
    def last_message(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    # --- Add messages ------------------------------------------------------

    def _append(self, **kwargs: Any) -> Message:
        msg = Message(seq=self._next_seq, **kwargs)
        self._messages.append(msg)
        self._next_seq += 1
        return msg

    def add_user_message(self, content: str, images: list[bytes] | None = None) -> Message:
        return self._append(
            role="user",
            content=content,
            images=[image_data_url(image) for image in images or []],
        )

    def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        structured: dict[str, Any] | None = None,
    ) -> Message:
        return self._append(
            role="assistant",
            content=content,
            tool_calls=list(tool_calls or []),
            structured=structured,
        )

    def add_tool_result(self, tool_call_id: str, content: str, is_error: bool = False) -> Message:
        return self._append(
            role="tool",
            content=content,
            tool_call_id=tool_call_id,
            is_error=is_error,
        )

    # --- Query -------------------------------------------------------------

    def to_llm_messages(self, include_system: bool = True) -> list[dict[str, Any]]:
        """Return messages as OpenAI-format dicts.

        Automatically repairs orphaned tool calls (assistant messages with
        tool_calls that lack corresponding tool-result messages). This
        happens when a run is cancelled mid-dispatch, or when the model asks
        for another tool in a turn that is not routed to the dispatcher.
        """
        msgs = [m.to_llm_dict() for m in self._messages]
        msgs = self._repair_orphaned_tool_calls(msgs)
        if include_system and self._system_prompt:
            msgs.insert(0, {"role": "system", "content": self._system_prompt})
        return msgs

    @staticmethod
    def _repair_orphaned_tool_calls(
        msgs: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Ensure every tool_call has a matching tool-result message."""
        repaired: list[dict[str, Any]] = []
        for i, m in enumerate(msgs):
            repaired.append(m)
            tool_calls = m.get("tool_calls")
            if m.get("role") != "assistant" or not tool_calls:
                continue
            answered: set[str] = set()
            for j in range(i + 1, len(msgs)):
                if msgs[j].get("role") == "tool":
                    tid = msgs[j].get("tool_call_id")
                    if tid:
                        answered.add(tid)
                else:
                    break
            for tc in tool_calls:
                tc_id = tc.get("id")
                if tc_id and tc_id not in answered:
                    repaired.append(
                        {
                            "role": "tool",
                            "tool_call_id": tc_id,
                            "content": "ERROR: Tool call was not executed.",
                        }
                    )
        return repaired
