"""
Event coalescer.

A text message and its attached photo often arrive as two separate events
within a second of each other. The coalescer buffers events per user and
hands one merged turn to the conversation layer.

Each buffered key moves through empty -> buffering -> flushing -> empty.
Every merge bumps a version number; a timer only flushes the entry whose
version it was scheduled for, so a timer that races a merge is ignored and
the timer scheduled by the merge takes over.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from src.config import settings
from src.core.events.turns import Turn, make_turn

logger = logging.getLogger(__name__)

OnReady = Callable[[Turn], Awaitable[None]]


@dataclass
class BufferedTurn:
    """Turn being accumulated for one user."""

    text: str
    image_ref: Optional[str]
    message_id: Optional[str]
    first_seen: float
    on_ready: OnReady
    version: int = 0
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class EventCoalescer:
    """Buffers near-simultaneous events from the same user into one turn."""

    def __init__(self, wait: float | None = None, settle: float | None = None):
        self.wait = wait or settings.coalesce_wait
        self.settle = settle or settings.coalesce_settle
        self._buffers: dict[str, BufferedTurn] = {}
        self._tasks: set[asyncio.Task] = set()

    def add(
        self,
        user_key: str,
        text: str | None,
        image_ref: str | None,
        message_id: str | None,
        on_ready: OnReady,
    ) -> None:
        """Buffer an event, merging it with a pending one for the same user."""
        loop = asyncio.get_running_loop()
        now = loop.time()
        text = (text or "").strip()

        entry = self._buffers.get(user_key)
        if entry is not None and now - entry.first_seen >= self.wait:
            # Window already over but the timer has not run yet
            self._flush(user_key, entry.version)
            entry = None

        if entry is None:
            entry = BufferedTurn(
                text=text,
                image_ref=image_ref,
                message_id=message_id,
                first_seen=now,
                on_ready=on_ready,
            )
            self._buffers[user_key] = entry
            self._schedule(loop, user_key, entry, self.wait)
            return

        if len(text) > len(entry.text):
            entry.text = text
        if entry.image_ref is None and image_ref:
            entry.image_ref = image_ref
        entry.version += 1
        entry.timer.cancel()
        self._schedule(loop, user_key, entry, self.settle)
        logger.debug(f"Merged event into buffered turn for {user_key} (v{entry.version})")

    def _schedule(self, loop, user_key: str, entry: BufferedTurn, delay: float) -> None:
        entry.timer = loop.call_later(delay, self._flush, user_key, entry.version)

    def _flush(self, user_key: str, version: int) -> None:
        entry = self._buffers.get(user_key)
        if entry is None or entry.version != version:
            return

        del self._buffers[user_key]
        if entry.timer is not None:
            entry.timer.cancel()

        turn = make_turn(user_key, entry.text, entry.image_ref, entry.message_id)
        task = asyncio.ensure_future(entry.on_ready(turn))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Turn handler failed: {task.exception()!r}")

    def flush_all(self) -> None:
        """Flush every buffered turn immediately."""
        for user_key, entry in list(self._buffers.items()):
            self._flush(user_key, entry.version)

    def clear(self) -> None:
        """Drop buffered turns without delivering them."""
        for entry in self._buffers.values():
            if entry.timer is not None:
                entry.timer.cancel()
        self._buffers.clear()

    async def drain(self) -> None:
        """Wait for in-flight turn handlers."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def size(self) -> int:
        return len(self._buffers)
