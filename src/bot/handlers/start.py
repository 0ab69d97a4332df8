"""
Start and help command handlers.
"""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

router = Router(name="start")


WELCOME_MESSAGE = """👋 <b>Hello!</b>

I'm the shop assistant. Ask me about anything from our catalog and I'll
find it for you. You can also send a photo of something you like.

<b>Try:</b>
• "Do you have red dresses?"
• "What options do you have for sneakers?"
• A photo with a question: "Do you have this in blue?"

When you find something you like, just say "I'll take it" and I'll help
you place the order.

/help - how to use the bot"""


HELP_MESSAGE = """🤖 <b>How I can help:</b>

<b>Find products:</b>
• Describe what you're looking for
• Ask for options: "show me some bags"
• Send a photo and I'll look for similar items

<b>Place an order:</b>
• Say "I want this one" after I show you a product
• I'll ask for your name, phone and address
• Confirm the summary and the order is done

💡 I remember our conversation, so you can ask follow-ups like
"how much is it?" or "any other colors?\""""


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    """Handle /start command."""
    await message.answer(WELCOME_MESSAGE)


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    """Handle /help command."""
    await message.answer(HELP_MESSAGE)
