"""LLM Provider abstraction for pluggable LLM backends."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Tool:
    """A tool the LLM can use, described by a JSON schema."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters or {"type": "object", "properties": {}},
            },
        }


@dataclass
class ToolCall:
    """A tool call requested by the LLM. ``arguments`` is the raw JSON string."""

    id: str
    name: str
    arguments: str = "{}"

    def to_openai_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def create(cls, id: str, name: str, **arguments: Any) -> "ToolCall":
        return cls(id=id, name=name, arguments=json.dumps(arguments, ensure_ascii=False))


@dataclass
class ToolResult:
    """Result of executing a tool."""

    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str = ""
    role: str = "assistant"
    tool_calls: list[ToolCall] = field(default_factory=list)
    structured: dict[str, Any] | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    stop_reason: str = ""
    raw_response: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class LLMProvider(ABC):
    """
    Abstract LLM provider - plug in any LLM backend.

    Implementations handle authentication, request/response formatting and
    token accounting, and raise TransportError for any backend failure.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[Tool] | None = None,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """
        Generate one completion.

        Args:
            messages: OpenAI-format history, system message included
            tools: Tools the model may call; None or [] disables tool calling
            model: Override the provider's default model for this call
            temperature: Sampling temperature override
            max_tokens: Maximum tokens to generate
            response_format: Optional structured output format, e.g.
                {"type": "json_object"}

        Returns:
            LLMResponse with content, tool calls and usage
        """
