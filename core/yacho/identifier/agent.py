"""
BirdIdentificationAgent: the chat-facing entry point.

Owns the chat history, the user-input slot, the tool registry and the graph,
and turns engine steps into chat events:

- after structured extraction: a Structured event with the identification
- when the model asks the user something: the question as an Assistant event
- when the run finishes: the answer, then "Identified a wild bird. Chat finished"

Usage::

    agent = BirdIdentificationAgent()
    answer = await agent.run("A small green bird with a white ring around its eye")

    # From the UI, while the agent is waiting on a question:
    agent.submit_user_input("It was on a plum tree")
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

from yacho.chat.events import AssistantEvent, StructuredEvent, UserEvent, UserImageEvent
from yacho.chat.session import ChatSession
from yacho.config import RuntimeConfig
from yacho.credentials import ApiKeyProvider, default_api_key_provider
from yacho.errors import ConfigurationError, RunCancelledError, UserInputError, YachoError
from yacho.graph.context import RunContext
from yacho.graph.executor import ExecutionResult, GraphExecutor
from yacho.graph.hooks import ExecutionObserver, LoggingObserver
from yacho.graph.user_input import UserInputSlot
from yacho.identifier.graph import PENDING_IMAGES, STRUCTURED_NODE_ID, build_identification_graph
from yacho.identifier.prompts import FINISHED_MESSAGE
from yacho.identifier.tools import ASK_USER_TOOL_NAME, build_tool_registry
from yacho.llm.litellm import LiteLLMProvider
from yacho.llm.provider import LLMProvider, ToolCall

logger = logging.getLogger(__name__)


class ChatEventObserver(ExecutionObserver):
    """Mirrors engine steps into the user-visible chat."""

    def __init__(
        self,
        chat: ChatSession,
        on_assistant_message: Callable[[], None] | None = None,
    ) -> None:
        self.chat = chat
        self.on_assistant_message = on_assistant_message

    def on_after_node(self, ctx: RunContext, node_id: str, output: Any) -> None:
        if node_id == STRUCTURED_NODE_ID:
            self.chat.append(StructuredEvent(output))

    def on_tool_call(self, ctx: RunContext, tool_call: ToolCall, args: dict[str, Any]) -> None:
        if tool_call.name == ASK_USER_TOOL_NAME:
            if self.on_assistant_message is not None:
                self.on_assistant_message()
            self.chat.append(AssistantEvent(args["message"]))

    def on_finish(self, ctx: RunContext, result: Any) -> None:
        self.chat.append(AssistantEvent(str(result)))
        self.chat.append(AssistantEvent(FINISHED_MESSAGE))


class BirdIdentificationAgent:
    """One chat with the bird-identification agent. Runs one identification at a time."""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        llm: LLMProvider | None = None,
        api_key_provider: ApiKeyProvider | None = None,
        observers: list[ExecutionObserver] | None = None,
    ):
        self.config = config or RuntimeConfig()
        self.chat = ChatSession()
        self.user_input = UserInputSlot()
        self.tools = build_tool_registry(self.user_input)
        self.graph = build_identification_graph(self.config.max_steps)
        self.observers = list(observers or [])

        self._llm = llm
        # An injected provider needs no key unless a key provider is given explicitly
        if api_key_provider is None and llm is None:
            api_key_provider = default_api_key_provider(self.config)
        self._api_key_provider = api_key_provider

        self._task: asyncio.Task[ExecutionResult] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._submit_lock = threading.Lock()
        self._cancel_requested = False
        self.last_result: ExecutionResult | None = None
        self.last_context: RunContext | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def _resolve_llm(self) -> LLMProvider:
        api_key = self._api_key_provider.require_api_key() if self._api_key_provider else None
        if self._llm is None:
            self._llm = LiteLLMProvider(
                model=self.config.model,
                api_key=api_key,
                api_base=self.config.api_base,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        return self._llm

    async def run(
        self,
        text: str,
        image: bytes | None = None,
        on_assistant_message: Callable[[], None] | None = None,
    ) -> str:
        """
        Identify a bird from the user's message (and optional photo).

        Args:
            text: The user's description
            image: Optional photo, sent to the model alongside the text
            on_assistant_message: Called when the agent asks the user a question

        Returns:
            The agent's final answer, or "Chat finished" if the model ended the chat

        Raises:
            ConfigurationError: No API key is configured (raised before any model call)
            RunCancelledError: cancel() was called
            YachoError: Any other run failure, also rendered into the chat
        """
        if self._task is not None:
            raise RuntimeError("An identification is already running for this chat")

        self.chat.append(UserImageEvent(image, text) if image is not None else UserEvent(text))

        try:
            llm = self._resolve_llm()
        except ConfigurationError as e:
            self.chat.append(AssistantEvent(e.user_message))
            raise

        ctx = RunContext(
            llm=llm,
            tools=self.tools,
            chat=self.chat,
            config=self.config,
            observers=[
                LoggingObserver(),
                ChatEventObserver(self.chat, on_assistant_message),
                *self.observers,
            ],
        )
        if image is not None:
            ctx.state[PENDING_IMAGES] = [image]
        self.last_context = ctx

        self._cancel_requested = False
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.ensure_future(GraphExecutor().execute(self.graph, text, ctx))
        try:
            result = await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            result = ExecutionResult(
                status="cancelled",
                error=RunCancelledError("Run was cancelled"),
                steps_executed=ctx.steps_executed,
                total_tokens=ctx.total_tokens,
                path=list(ctx.path),
            )
        finally:
            with self._submit_lock:
                self._task = None
                self._loop = None
                # Answers nobody asked for never leak into the next run
                self.user_input.clear()

        self.last_result = result
        if result.success:
            return str(result.output)

        error: YachoError = result.error or RunCancelledError("Run ended without a result")
        logger.warning(f"Identification {result.status}: {error}")
        self.chat.append(AssistantEvent(error.user_message))
        raise error

    def submit_user_input(self, text: str) -> None:
        """
        Answer the agent's pending question. Safe to call from any thread.

        Raises:
            UserInputError: No identification is running, or an earlier answer
                has not been consumed yet
        """
        with self._submit_lock:
            if not self.is_running:
                raise UserInputError("No identification is running")
            if self.user_input.has_value:
                raise UserInputError("A user answer is already pending and has not been consumed")
            self.chat.append(UserEvent(text))
            self.user_input.submit(text)

    def cancel(self) -> None:
        """Cancel the running identification, if any. Safe to call from any thread."""
        self._cancel_requested = True
        self.user_input.cancel()
        task, loop = self._task, self._loop
        if task is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(task.cancel)
