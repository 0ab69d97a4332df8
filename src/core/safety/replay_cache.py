"""
Replay suppression for redelivered transport events.
"""

import logging
import threading
import time
from typing import Callable

from src.config import settings

logger = logging.getLogger(__name__)


class ReplayCache:
    """
    Remembers message ids for `ttl` seconds.

    `seen()` records an unseen id and returns False; every later call with
    the same id returns True until the entry expires.
    """

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl or settings.replay_ttl
        self._clock = clock
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()

    def seen(self, message_id: str) -> bool:
        """Check-and-record a message id."""
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            if message_id in self._expiry:
                return True
            self._expiry[message_id] = now + self.ttl
            return False

    def sweep(self) -> int:
        """Remove expired ids. Returns the number removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, expires_at in self._expiry.items() if expires_at <= now]
        for key in expired:
            del self._expiry[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._expiry)
