"""
Free-form chat handler: turns Telegram messages into inbound events.

Replies are not sent here. The gateway coalesces the event with any
follow-up from the same user and hands the reply to the outbound sender.
"""

import logging

from aiogram import Bot, F, Router
from aiogram.types import Message
from pydantic import ValidationError

from src.core.events import InboundEvent, InboundGateway
from src.core.text import redact_url

logger = logging.getLogger(__name__)

router = Router(name="chat")

TELEGRAM_FILE_URL = "https://api.telegram.org/file/bot{token}/{path}"


def sender_key(message: Message) -> str:
    return f"tg:{message.chat.id}"


async def resolve_photo_url(message: Message, bot: Bot) -> str | None:
    """Download URL of the largest photo size, if the message has a photo."""
    if not message.photo:
        return None
    largest = message.photo[-1]
    file = await bot.get_file(largest.file_id)
    if not file.file_path:
        return None
    return TELEGRAM_FILE_URL.format(token=bot.token, path=file.file_path)


@router.message(F.text | F.photo)
async def handle_message(message: Message, bot: Bot, gateway: InboundGateway) -> None:
    """Handle text, photo and photo-with-caption messages."""
    try:
        image_ref = await resolve_photo_url(message, bot)
    except Exception as e:
        logger.warning(f"Could not resolve photo for chat {message.chat.id}: {redact_url(str(e))}")
        image_ref = None

    try:
        event = InboundEvent(
            sender_key=sender_key(message),
            text=message.text or message.caption or "",
            image_ref=image_ref,
            message_id=f"{message.chat.id}:{message.message_id}",
            timestamp=message.date.timestamp(),
        )
    except ValidationError as e:
        logger.debug(f"Ignoring unusable message from chat {message.chat.id}: {e.errors()}")
        return

    if not gateway.submit(event):
        logger.debug(f"Event {event.message_id} dropped by gateway")
