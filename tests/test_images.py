"""Tests for the image fetcher."""

import aiohttp
import pytest

from src.data import images
from src.data.images import ImageFetchError, ImageFetcher

TOKEN_URL = "https://api.telegram.org/file/bot123456:AAH-secret/photos/file_7.jpg"


class RefusingSession:
    """Stands in for aiohttp.ClientSession; every request fails to connect."""

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def get(self, url):
        raise aiohttp.ClientConnectionError(f"Cannot connect to host for {url}")


class TestFetchErrors:
    async def test_connection_error_hides_bot_token(self, monkeypatch):
        monkeypatch.setattr(images.aiohttp, "ClientSession", RefusingSession)

        with pytest.raises(ImageFetchError) as excinfo:
            await ImageFetcher(max_bytes=1024).fetch(TOKEN_URL)

        message = str(excinfo.value)
        assert "AAH-secret" not in message
        assert "/file/bot***/photos/file_7.jpg" in message
        assert excinfo.value.__cause__ is None
