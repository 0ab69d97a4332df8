"""
Bounded retry policy for calls to slow backends.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from src.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """All attempts failed; `last_error` holds the final cause."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_error!r}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass
class RetryPolicy:
    """
    Exponential backoff with jitter.

    Args:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the second attempt, seconds
        max_delay: Upper bound for a single delay, seconds
        jitter: Maximum random extra delay, seconds
    """

    max_attempts: int = field(default_factory=lambda: settings.llm_max_retries + 1)
    base_delay: float = field(default_factory=lambda: settings.llm_retry_base_delay)
    max_delay: float = field(default_factory=lambda: settings.llm_retry_max_delay)
    jitter: float = field(default_factory=lambda: settings.llm_retry_jitter)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay += self.rng.uniform(0, self.jitter)
        return delay

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """
        Run fn until it succeeds or attempts run out.

        Each attempt is bounded by `timeout` seconds when given. Cancellation
        is never retried.

        Raises:
            RetryExhaustedError: when every attempt failed
        """
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                if timeout is not None:
                    return await asyncio.wait_for(fn(), timeout=timeout)
                return await fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed ({type(e).__name__}), "
                    f"retrying in {delay:.2f}s"
                )
                await sleep(delay)

        raise RetryExhaustedError(self.max_attempts, last_error)
