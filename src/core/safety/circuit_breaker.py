"""
Circuit breaker guarding the generative backend.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable

from src.config import settings

logger = logging.getLogger(__name__)


class BreakerState(Enum):
    """Breaker state."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Failure-count-gated switch.

    Opens after `threshold` consecutive failures and rejects calls for
    `reset_timeout` seconds. The first `allow()` after the timeout moves to
    half-open and lets exactly one trial call through; its outcome closes the
    breaker or reopens it for another full period.
    """

    def __init__(
        self,
        threshold: int | None = None,
        reset_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "llm",
    ):
        self.threshold = threshold or settings.breaker_threshold
        self.reset_timeout = reset_timeout or settings.breaker_reset_timeout
        self.name = name
        self._clock = clock
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._open_until = 0.0
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> BreakerState:
        with self._lock:
            return self._state

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def is_open(self) -> bool:
        """True while calls are being rejected (does not consume the trial slot)."""
        with self._lock:
            if self._state is BreakerState.OPEN:
                return self._clock() < self._open_until
            return self._state is BreakerState.HALF_OPEN and self._trial_in_flight

    def allow(self) -> bool:
        """Reserve permission for one call."""
        with self._lock:
            if self._state is BreakerState.CLOSED:
                return True

            if self._state is BreakerState.OPEN:
                if self._clock() < self._open_until:
                    return False
                self._state = BreakerState.HALF_OPEN
                self._trial_in_flight = False
                logger.info(f"Circuit breaker '{self.name}' half-open, allowing trial call")

            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state is BreakerState.HALF_OPEN:
                self._state = BreakerState.CLOSED
                self._failures = 0
                self._trial_in_flight = False
                logger.info(f"Circuit breaker '{self.name}' closed")
                return
            if self._failures > 0:
                self._failures -= 1

    def record_failure(self) -> None:
        with self._lock:
            if self._state is BreakerState.HALF_OPEN:
                self._open_locked()
                return

            self._failures += 1
            if self._state is BreakerState.CLOSED and self._failures >= self.threshold:
                self._open_locked()

    def release(self) -> None:
        """Give back a trial slot whose call ended without an outcome (e.g. cancelled)."""
        with self._lock:
            if self._state is BreakerState.HALF_OPEN:
                self._trial_in_flight = False

    def _open_locked(self) -> None:
        self._state = BreakerState.OPEN
        self._open_until = self._clock() + self.reset_timeout
        self._trial_in_flight = False
        logger.error(
            f"Circuit breaker '{self.name}' opened after {self._failures} failures, "
            f"blocking calls for {self.reset_timeout:.0f}s"
        )

    def reset(self) -> None:
        with self._lock:
            self._state = BreakerState.CLOSED
            self._failures = 0
            self._open_until = 0.0
            self._trial_in_flight = False
