"""
Download user-sent images for visual search.
"""

import io
import logging
from functools import lru_cache

import aiohttp
from PIL import Image, UnidentifiedImageError

from src.config import settings
from src.core.text import redact_url

logger = logging.getLogger(__name__)


class ImageFetchError(Exception):
    """Image could not be downloaded or decoded."""


class ImageFetcher:
    """Fetches an image URL and decodes it with Pillow."""

    def __init__(self, max_bytes: int | None = None, timeout: float = 10.0):
        self.max_bytes = max_bytes or settings.image_max_bytes
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self, url: str) -> Image.Image:
        """
        Download and decode an image.

        Raises:
            ImageFetchError: on HTTP errors, non-image content, oversize or undecodable data
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ImageFetchError(f"HTTP {response.status}")

                    content_type = response.headers.get("Content-Type", "")
                    if content_type and not content_type.startswith(("image/", "application/octet-stream")):
                        raise ImageFetchError(f"Not an image: {content_type}")

                    if response.content_length and response.content_length > self.max_bytes:
                        raise ImageFetchError(f"Image too large: {response.content_length} bytes")

                    data = await response.content.read(self.max_bytes + 1)
        except aiohttp.ClientError as e:
            raise ImageFetchError(redact_url(str(e))) from None

        if len(data) > self.max_bytes:
            raise ImageFetchError("Image too large")

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageFetchError(f"Cannot decode image: {e}") from e

        logger.debug(f"Fetched image {image.size[0]}x{image.size[1]} ({len(data)} bytes)")
        return image


@lru_cache(maxsize=1)
def get_image_fetcher() -> ImageFetcher:
    return ImageFetcher()
