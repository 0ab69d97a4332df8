"""
Reply cache and in-flight request de-duplication.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from src.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry:
    """Cached reply."""

    response_text: str
    language: str
    timestamp: float


class ResponseCache:
    """TTL cache of generated replies keyed by a normalized-input hash."""

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl or settings.response_cache_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        """Return a live entry or None."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now - entry.timestamp > self.ttl:
                del self._entries[key]
                return None
            return entry

    def set(self, key: str, response_text: str, language: str) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                response_text=response_text,
                language=language,
                timestamp=self._clock(),
            )

    def sweep(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.timestamp > self.ttl]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleaned {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RequestDeduplicator(Generic[T]):
    """
    Joins concurrent callers with the same key onto one underlying call.

    The lookup and the registration of the new task happen without an
    intervening await, so on a single event loop only one task is ever
    created per key.
    """

    def __init__(self):
        self._pending: dict[str, asyncio.Task] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda _t, k=key: self._forget(k, _t))
        else:
            logger.debug(f"Joining in-flight request {key[:12]}")

        # One caller cancelling must not cancel the shared call
        return await asyncio.shield(task)

    def _forget(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    def in_flight(self) -> int:
        return len(self._pending)
