"""
Bot handlers registration.
"""

from aiogram import Dispatcher

from src.bot.handlers.chat import router as chat_router
from src.bot.handlers.start import router as start_router


def register_handlers(dp: Dispatcher) -> None:
    """Register all handlers to dispatcher."""
    # Order matters! Commands first, then the catch-all chat handler
    dp.include_router(start_router)
    dp.include_router(chat_router)
