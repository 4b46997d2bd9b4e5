"""ChatSession: append-only, ordered history of user-visible chat events.

The engine is the writer; any number of readers (UIs, tests, loggers) poll or
follow the history. Appends may come from the event loop running the agent or
from a UI thread, so the list is guarded by a lock and waiting readers are
woken through their own event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Iterator

from yacho.chat.events import ChatEvent

logger = logging.getLogger(__name__)


def _wake(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)


class ChatSession:
    """
    Append-only chat history.

    Readers get snapshots (tuples), never the live list, so no reader can
    mutate or observe a half-applied append.

    Example:
        chat = ChatSession()
        chat.append(UserEvent("I saw a small bird"))

        cursor = 0
        new_events = chat.read_since(cursor)

        async for event in chat.follow():
            print(render_event(event))
    """

    def __init__(self) -> None:
        self._events: list[ChatEvent] = []
        self._lock = threading.Lock()
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future[None]]] = []

    # --- Write -------------------------------------------------------------

    def append(self, event: ChatEvent) -> int:
        """Append an event and wake followers. Returns the event's index."""
        with self._lock:
            self._events.append(event)
            index = len(self._events) - 1
            waiters, self._waiters = self._waiters, []

        for loop, waiter in waiters:
            if loop.is_closed():
                continue
            loop.call_soon_threadsafe(_wake, waiter)

        logger.debug("Chat event #%d: %s", index, event.type)
        return index

    # --- Read --------------------------------------------------------------

    @property
    def events(self) -> tuple[ChatEvent, ...]:
        """Snapshot of the full history."""
        with self._lock:
            return tuple(self._events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[ChatEvent]:
        return iter(self.events)

    def __getitem__(self, index: int) -> ChatEvent:
        with self._lock:
            return self._events[index]

    def read_since(self, cursor: int) -> list[ChatEvent]:
        """Events at positions >= cursor, in order."""
        if cursor < 0:
            raise ValueError("cursor must be >= 0")
        with self._lock:
            return self._events[cursor:]

    async def wait_for_events(self, cursor: int) -> list[ChatEvent]:
        """Block until at least one event exists at position >= cursor, then return them."""
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if len(self._events) > cursor:
                    return self._events[cursor:]
                waiter: asyncio.Future[None] = loop.create_future()
                self._waiters.append((loop, waiter))
            await waiter

    async def follow(self, start: int = 0) -> AsyncIterator[ChatEvent]:
        """Yield every event from ``start`` onward, waiting for new ones forever."""
        cursor = start
        while True:
            batch = await self.wait_for_events(cursor)
            for event in batch:
                yield event
            cursor += len(batch)
