"""
Inbound gateway: safety checks in front of the coalescer.
"""

import logging
import time
from typing import Callable, Protocol

from src.config import settings
from src.core.events.coalescer import EventCoalescer
from src.core.events.turns import InboundEvent, Turn
from src.core.safety import RateLimiter, ReplayCache

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"


class TurnHandler(Protocol):
    async def handle(self, turn: Turn): ...


class Outbound(Protocol):
    async def deliver(self, user_key: str, response) -> None: ...


class InboundGateway:
    """
    Accepts raw events from transport adapters.

    Drops events in this order: global rate limit, replayed message id,
    stale event, per-user rate limit. Accepted events go to the coalescer;
    each coalesced turn is handled and delivered exactly once.
    """

    def __init__(
        self,
        handler: TurnHandler,
        outbound: Outbound,
        coalescer: EventCoalescer | None = None,
        user_limiter: RateLimiter | None = None,
        global_limiter: RateLimiter | None = None,
        replay_cache: ReplayCache | None = None,
        max_event_age: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.handler = handler
        self.outbound = outbound
        self.coalescer = coalescer or EventCoalescer()
        self.user_limiter = user_limiter or RateLimiter()
        self.global_limiter = global_limiter or RateLimiter(
            max_events=settings.global_rate_limit_max_events
        )
        self.replay_cache = replay_cache or ReplayCache()
        self.max_event_age = max_event_age or settings.max_event_age
        self._clock = clock

    def submit(self, event: InboundEvent) -> bool:
        """Run safety checks and buffer the event. Returns False when dropped."""
        if not self.global_limiter.allow(GLOBAL_KEY):
            logger.warning("Global rate limit reached, dropping event")
            return False

        if event.message_id and self.replay_cache.seen(event.message_id):
            logger.debug(f"Duplicate event {event.message_id} ignored")
            return False

        age = self._clock() - event.timestamp
        if age > self.max_event_age:
            logger.warning(f"Stale event from {event.sender_key} ({age:.0f}s old) ignored")
            return False

        if not self.user_limiter.allow(event.sender_key):
            score = self.user_limiter.record_anomaly(event.sender_key)
            logger.warning(f"Rate limit exceeded for {event.sender_key} (score {score})")
            return False

        self.coalescer.add(
            event.sender_key,
            event.text,
            event.image_ref,
            event.message_id,
            self._process,
        )
        return True

    async def _process(self, turn: Turn) -> None:
        try:
            response = await self.handler.handle(turn)
        except Exception as e:
            logger.error(f"Failed to handle turn for {turn.user_key}: {e}", exc_info=True)
            return

        try:
            await self.outbound.deliver(turn.user_key, response)
        except Exception as e:
            logger.error(f"Failed to deliver reply to {turn.user_key}: {e}", exc_info=True)

    async def aclose(self) -> None:
        """Flush buffered turns and wait for their replies."""
        self.coalescer.flush_all()
        await self.coalescer.drain()
