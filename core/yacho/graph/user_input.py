"""
Single-slot exchange between a UI (producer) and the human-input tool (consumer).

- submit() is called by the UI from any thread and never blocks.
- take() is awaited by the tool inside the run and consumes the value.

Double-submit policy: a second submit() while a value is still unconsumed is
rejected with UserInputError and the first value is kept. At most one take()
may wait at a time; a second concurrent take() is a usage error.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from yacho.errors import RunCancelledError, UserInputError

logger = logging.getLogger(__name__)


class UserInputSlot:
    """Holds at most one pending user answer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: str | None = None
        self._cancelled = False
        self._waiter: asyncio.Future[None] | None = None
        self._waiter_loop: asyncio.AbstractEventLoop | None = None

    @property
    def has_value(self) -> bool:
        with self._lock:
            return self._value is not None

    @property
    def has_waiter(self) -> bool:
        """True while the run is blocked waiting for the user."""
        with self._lock:
            return self._waiter is not None

    def submit(self, text: str) -> None:
        """Store ``text`` and wake the waiting tool, if any."""
        with self._lock:
            if self._value is not None:
                raise UserInputError("A user answer is already pending and has not been consumed")
            self._value = text
            waiter, loop = self._waiter, self._waiter_loop

        if waiter is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(_wake, waiter)
        logger.debug("User input submitted (waiting=%s)", waiter is not None)

    async def take(self, timeout: float | None = None) -> str:
        """Wait for a value, then consume and clear it."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._waiter is not None:
                raise UserInputError("Another wait for user input is already pending")
            self._cancelled = False
            waiter: asyncio.Future[None] = loop.create_future()
            self._waiter = waiter
            self._waiter_loop = loop

        try:
            while True:
                with self._lock:
                    if self._cancelled:
                        raise RunCancelledError("Waiting for user input was cancelled")
                    if self._value is not None:
                        value, self._value = self._value, None
                        return value
                    if waiter.done():
                        waiter = loop.create_future()
                        self._waiter = waiter
                if timeout is not None:
                    await asyncio.wait_for(asyncio.shield(waiter), timeout=timeout)
                else:
                    await waiter
        finally:
            with self._lock:
                self._waiter = None
                self._waiter_loop = None

    def clear(self) -> None:
        """Drop a pending value that nobody consumed."""
        with self._lock:
            dropped, self._value = self._value, None
        if dropped is not None:
            logger.debug("Dropped unconsumed user input")

    def cancel(self) -> None:
        """Release an active wait with RunCancelledError and drop any pending value."""
        with self._lock:
            self._value = None
            waiter, loop = self._waiter, self._waiter_loop
            if waiter is not None:
                self._cancelled = True

        if waiter is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(_wake, waiter)


def _wake(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)
