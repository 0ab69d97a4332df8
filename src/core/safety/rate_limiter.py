"""
Fixed-window rate limiter with a coarse abuse counter.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from src.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateBucket:
    """Events counted in the current window for one key."""

    count: int
    reset_at: float


class RateLimiter:
    """
    Per-key event limiter.

    Each key gets a counter that resets every `window` seconds. An event is
    allowed while the counter is below `max_events`.
    """

    def __init__(
        self,
        window: float | None = None,
        max_events: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window or settings.rate_limit_window
        self.max_events = max_events or settings.rate_limit_max_events
        self._clock = clock
        self._buckets: dict[str, RateBucket] = {}
        self._anomalies: dict[str, int] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Count an event for key and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or now >= bucket.reset_at:
                self._buckets[key] = RateBucket(count=1, reset_at=now + self.window)
                return True

            if bucket.count < self.max_events:
                bucket.count += 1
                return True

            return False

    def record_anomaly(self, key: str) -> int:
        """Bump the abuse score for key. Used for monitoring, never for blocking."""
        with self._lock:
            score = self._anomalies.get(key, 0) + 1
            self._anomalies[key] = score
        return score

    def score(self, key: str) -> int:
        """Current abuse score for key."""
        with self._lock:
            return self._anomalies.get(key, 0)

    def sweep(self) -> int:
        """Drop expired buckets and reset abuse scores. Returns buckets removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, bucket in self._buckets.items() if now >= bucket.reset_at]
            for key in expired:
                del self._buckets[key]
            self._anomalies.clear()

        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired buckets")
        return len(expired)

    def stats(self) -> dict:
        """Snapshot for monitoring."""
        with self._lock:
            return {
                "buckets": len(self._buckets),
                "flagged": {k: v for k, v in self._anomalies.items() if v > 0},
            }
