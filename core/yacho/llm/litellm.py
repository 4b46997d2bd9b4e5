"""LiteLLM-backed provider (OpenAI, Anthropic, Gemini, ... behind one interface)."""

import json
import logging
import time
from typing import Any

import litellm

from yacho.errors import TransportError
from yacho.llm.provider import LLMProvider, LLMResponse, Tool, ToolCall

logger = logging.getLogger(__name__)


class LiteLLMProvider(LLMProvider):
    """
    Provider that delegates to ``litellm.acompletion``.

    Example:
        llm = LiteLLMProvider(model="gpt-4.1", api_key=key)
        response = await llm.complete([{"role": "user", "content": "hi"}])
    """

    def __init__(
        self,
        model: str = "gpt-4.1",
        api_key: str | None = None,
        api_base: str | None = None,
        temperature: float | None = None,
        max_tokens: int = 2048,
        timeout: float | None = 120.0,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

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
        model_name = model or self.model
        kwargs: dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        temperature = temperature if temperature is not None else self.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature
        if tools:
            kwargs["tools"] = [t.to_openai_dict() for t in tools]
        if response_format:
            kwargs["response_format"] = response_format

        started = time.monotonic()
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise TransportError(model_name, f"{type(e).__name__}: {e}") from e
        latency_ms = int((time.monotonic() - started) * 1000)

        try:
            choice = response.choices[0]
            message = choice.message
        except (AttributeError, IndexError) as e:
            raise TransportError(model_name, f"malformed response: {e}") from e

        tool_calls = [
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments or "{}",
            )
            for tc in (getattr(message, "tool_calls", None) or [])
        ]
        content = message.content or ""

        structured = None
        if response_format and content:
            try:
                parsed = json.loads(content)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                structured = parsed

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0

        logger.debug(
            "LLM call complete",
            extra={
                "event": "llm_call",
                "model": model_name,
                "latency_ms": latency_ms,
                "tokens_used": input_tokens + output_tokens,
            },
        )

        return LLMResponse(
            content=content,
            model=getattr(response, "model", None) or model_name,
            tool_calls=tool_calls,
            structured=structured,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            stop_reason=getattr(choice, "finish_reason", "") or "",
            raw_response=response,
        )
