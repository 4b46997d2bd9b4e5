"""RunContext: everything one invocation of a graph reads and mutates.

Graphs, nodes and edges are built once and shared; the prompt history, tool
call counter and token accounting of a run live here and are passed
explicitly to every node, edge guard and observer. A fresh context is created
per run, so concurrent or successive runs never share counters.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from yacho.chat.session import ChatSession
from yacho.config import RuntimeConfig
from yacho.graph.conversation import PromptSession
from yacho.graph.hooks import ExecutionObserver
from yacho.llm.provider import LLMProvider, LLMResponse

if TYPE_CHECKING:
    from yacho.runner.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


@dataclass
class RunContext:
    """Run-scoped state passed to every node."""

    llm: LLMProvider
    tools: ToolRegistry
    chat: ChatSession = field(default_factory=ChatSession)
    session: PromptSession = field(default_factory=PromptSession)
    config: RuntimeConfig = field(default_factory=RuntimeConfig)
    observers: list[ExecutionObserver] = field(default_factory=list)
    run_id: str = field(default_factory=new_run_id)

    # Counters (shared with nested subgraphs)
    steps_executed: int = 0
    path: list[str] = field(default_factory=list)
    tool_call_count: int = 0
    llm_call_count: int = 0
    total_tokens: int = 0

    # Free-form per-run scratch space for nodes (e.g. the latest structured result)
    state: dict[str, Any] = field(default_factory=dict)

    def notify(self, hook: str, *args: Any) -> None:
        """Invoke ``hook`` on every observer, in registration order."""
        for observer in self.observers:
            getattr(observer, hook)(self, *args)

    async def request_llm(
        self,
        *,
        allow_tools: bool = True,
        messages: list[dict[str, Any]] | None = None,
        model: str | None = None,
        response_format: dict[str, Any] | None = None,
        record: bool = True,
    ) -> LLMResponse:
        """
        Send a prompt to the model and (by default) record the reply.

        Args:
            allow_tools: Offer the registered tools to the model
            messages: Prompt to send; defaults to the whole prompt session
            model: Model override (e.g. the fixing model)
            response_format: Structured output format passed to the provider
            record: Append the reply to the prompt session as an assistant message

        Returns:
            The model response
        """
        if messages is None:
            messages = self.session.to_llm_messages()
        tools = self.tools.get_tools() if allow_tools else None

        response = await self.llm.complete(
            messages,
            tools,
            model=model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format=response_format,
        )

        self.llm_call_count += 1
        self.total_tokens += response.input_tokens + response.output_tokens

        if record:
            self.session.add_assistant_message(
                response.content,
                tool_calls=response.tool_calls,
                structured=response.structured,
            )

        self.notify("on_after_llm_call", messages, response)
        return response
