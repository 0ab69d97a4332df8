"""
Outbound sender: renders conversation responses into Telegram messages.
"""

import logging

from aiogram import Bot
from aiogram.types import InputMediaPhoto

from src.core.conversation import ConversationResponse
from src.core.rag.models import RetrievedProduct

logger = logging.getLogger(__name__)

MAX_MEDIA_GROUP = 10


def product_caption(product: RetrievedProduct) -> str:
    if product.price is not None:
        return f"{product.name} - ${product.price:.2f}"
    return product.name


def chat_id_from_key(user_key: str) -> int:
    """Inverse of the chat handler's sender key ("tg:<chat_id>")."""
    prefix, _, chat_id = user_key.partition(":")
    if prefix != "tg" or not chat_id:
        raise ValueError(f"Not a Telegram user key: {user_key}")
    return int(chat_id)


class TelegramOutbound:
    """Delivers reply text and product photos to a Telegram chat."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def deliver(self, user_key: str, response: ConversationResponse) -> None:
        chat_id = chat_id_from_key(user_key)

        with_photos = [p for p in response.products if p.image_url][:MAX_MEDIA_GROUP]
        if with_photos:
            try:
                await self._send_photos(chat_id, with_photos)
            except Exception as e:
                # Photos are decoration; the text still goes out
                logger.warning(f"Failed to send product photos to {user_key}: {e}")

        if response.text:
            # Replies are model output, not markup
            await self.bot.send_message(chat_id, response.text, parse_mode=None)

    async def _send_photos(self, chat_id: int, products: list[RetrievedProduct]) -> None:
        if len(products) == 1:
            product = products[0]
            await self.bot.send_photo(
                chat_id,
                photo=product.image_url,
                caption=product_caption(product),
                parse_mode=None,
            )
            return

        media = [
            InputMediaPhoto(media=p.image_url, caption=product_caption(p), parse_mode=None)
            for p in products
        ]
        await self.bot.send_media_group(chat_id, media=media)
