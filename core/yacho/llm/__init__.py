"""LLM provider abstraction."""

from yacho.llm.litellm import LiteLLMProvider
from yacho.llm.mock import MockLLMProvider, MockRequest
from yacho.llm.provider import LLMProvider, LLMResponse, Tool, ToolCall, ToolResult

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "Tool",
    "ToolCall",
    "ToolResult",
    "LiteLLMProvider",
    "MockLLMProvider",
    "MockRequest",
]
