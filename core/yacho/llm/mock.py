"""Scripted LLM provider for tests and offline demos."""

import asyncio
import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from yacho.errors import TransportError
from yacho.llm.provider import LLMProvider, LLMResponse, Tool

ScriptedReply = LLMResponse | str | Exception | Callable[["MockRequest"], LLMResponse]


@dataclass
class MockRequest:
    """One recorded call to MockLLMProvider.complete()."""

    messages: list[dict[str, Any]]
    tools: list[Tool] = field(default_factory=list)
    model: str | None = None
    temperature: float | None = None
    response_format: dict[str, Any] | None = None

    @property
    def tool_names(self) -> list[str]:
        return [t.name for t in self.tools]

    @property
    def last_user_content(self) -> str:
        for message in reversed(self.messages):
            if message.get("role") == "user":
                content = message.get("content")
                return content if isinstance(content, str) else str(content)
        return ""


class MockLLMProvider(LLMProvider):
    """
    Replays a script of replies in order and records every request.

    Script entries may be an LLMResponse, a plain string (an assistant text
    reply), an exception (raised from complete()), or a callable that builds
    the reply from the recorded request. When the script runs out,
    ``default`` is returned, or TransportError is raised if there is none.

    Example:
        llm = MockLLMProvider(["candidates: ...", '{"reliabilityScore": 72, ...}'])
        await llm.complete(messages)
        assert llm.requests[0].tool_names == []
    """

    def __init__(
        self,
        script: list[ScriptedReply] | None = None,
        default: ScriptedReply | None = None,
        model: str = "mock-model",
        delay: float = 0.0,
    ):
        self._script: list[ScriptedReply] = list(script or [])
        self.default = default
        self.model = model
        self.delay = delay
        self.requests: list[MockRequest] = []

    def add(self, *replies: ScriptedReply) -> None:
        self._script.extend(replies)

    @property
    def remaining(self) -> int:
        return len(self._script)

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
        request = MockRequest(
            messages=copy.deepcopy(messages),
            tools=list(tools or []),
            model=model,
            temperature=temperature,
            response_format=response_format,
        )
        self.requests.append(request)

        if self.delay:
            await asyncio.sleep(self.delay)

        if self._script:
            reply = self._script.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise TransportError(model or self.model, "mock script exhausted")

        if isinstance(reply, Exception):
            raise reply
        if callable(reply) and not isinstance(reply, LLMResponse):
            reply = reply(request)
        if isinstance(reply, str):
            reply = LLMResponse(content=reply)

        response = copy.deepcopy(reply)
        if not response.model:
            response.model = model or self.model
        return response
