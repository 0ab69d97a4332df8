"""
Shop assistant Telegram bot - main entry point.
"""

import asyncio
import logging
import sys

from src.bot.bot import get_bot, get_dispatcher
from src.bot.handlers import register_handlers
from src.bot.outbound import TelegramOutbound
from src.config import settings
from src.core.conversation import ConversationStateMachine
from src.core.events import EventCoalescer, InboundGateway
from src.core.rag.generator import ResponseGenerator
from src.core.rag.retriever import ProductRetriever
from src.core.safety import (
    CircuitBreaker,
    PeriodicSweeper,
    RateLimiter,
    ReplayCache,
    RequestDeduplicator,
    ResponseCache,
)
from src.db.repositories import SqlStore
from src.db.sqlite import db
from src.db.vector import vector_db
from src.integrations.llm import get_default_llm


# Fix for Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class Application:
    """Wires the conversation core to the Telegram transport."""

    def __init__(self, bot):
        self.store = SqlStore(db)
        self.retriever = ProductRetriever(search=vector_db)
        self.cache = ResponseCache()
        self.generator = ResponseGenerator(
            llm=get_default_llm(),
            store=self.store,
            retriever=self.retriever,
            breaker=CircuitBreaker(name="llm"),
            cache=self.cache,
            deduplicator=RequestDeduplicator(),
        )
        self.conversation = ConversationStateMachine(
            store=self.store,
            generator=self.generator,
            retriever=self.retriever,
        )

        self.user_limiter = RateLimiter()
        self.global_limiter = RateLimiter(max_events=settings.global_rate_limit_max_events)
        self.replay_cache = ReplayCache()
        self.gateway = InboundGateway(
            handler=self.conversation,
            outbound=TelegramOutbound(bot),
            coalescer=EventCoalescer(),
            user_limiter=self.user_limiter,
            global_limiter=self.global_limiter,
            replay_cache=self.replay_cache,
        )
        self.sweeper = PeriodicSweeper(
            [
                self.user_limiter.sweep,
                self.global_limiter.sweep,
                self.replay_cache.sweep,
                self.cache.sweep,
            ]
        )

    async def on_startup(self) -> None:
        """Initialize services on startup."""
        logger.info("Starting shop assistant bot...")

        await db.init()
        logger.info("Database initialized")

        await vector_db.init_collection()
        logger.info(f"Vector database initialized ({await vector_db.count()} products)")

        self.sweeper.start()

    async def on_shutdown(self) -> None:
        """Cleanup on shutdown."""
        logger.info("Shutting down shop assistant bot...")

        await self.sweeper.stop()
        await self.gateway.aclose()
        await self.conversation.drain()

        await db.close()
        await vector_db.close()

        logger.info("Cleanup complete")


async def main() -> None:
    """Main function to run the bot."""
    # Fails fast on a missing token or LLM credentials
    bot = get_bot()
    dp = get_dispatcher()
    app = Application(bot)

    # Handlers receive the gateway as a keyword argument
    dp["gateway"] = app.gateway
    register_handlers(dp)

    # Register startup/shutdown hooks
    dp.startup.register(app.on_startup)
    dp.shutdown.register(app.on_shutdown)

    # Start polling
    logger.info("Bot is starting...")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
