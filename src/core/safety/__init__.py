"""
Safety primitives: rate limiting, replay suppression, caching,
request de-duplication and circuit breaking.
"""

from src.core.safety.circuit_breaker import BreakerState, CircuitBreaker
from src.core.safety.locks import KeyedLock
from src.core.safety.rate_limiter import RateLimiter
from src.core.safety.replay_cache import ReplayCache
from src.core.safety.response_cache import CacheEntry, RequestDeduplicator, ResponseCache
from src.core.safety.retry import RetryExhaustedError, RetryPolicy
from src.core.safety.sweeper import PeriodicSweeper

__all__ = [
    "BreakerState",
    "CircuitBreaker",
    "KeyedLock",
    "RateLimiter",
    "ReplayCache",
    "CacheEntry",
    "RequestDeduplicator",
    "ResponseCache",
    "RetryExhaustedError",
    "RetryPolicy",
    "PeriodicSweeper",
]
