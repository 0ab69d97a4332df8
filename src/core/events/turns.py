"""
Inbound events and the logical turns built from them.

Transport adapters hand the core an `InboundEvent`; after coalescing the
core works only with the closed `Turn` variants below.
"""

import time
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from src.config import settings
from src.core.text import clamp_text


class InboundEvent(BaseModel):
    """One message event as delivered by a messaging platform."""

    sender_key: str = Field(..., min_length=1, max_length=128)
    text: str = ""
    message_id: Optional[str] = None
    image_ref: Optional[str] = None
    timestamp: float = Field(default_factory=time.time, description="Unix seconds")

    @field_validator("text", mode="before")
    @classmethod
    def clamp_message(cls, value: object) -> str:
        if value is None:
            return ""
        return clamp_text(str(value), settings.max_message_chars, suffix="")

    @field_validator("image_ref")
    @classmethod
    def check_image_ref(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("image reference must be an http(s) URL")
        return value

    @model_validator(mode="after")
    def require_content(self) -> "InboundEvent":
        if not self.text and not self.image_ref:
            raise ValueError("event carries neither text nor image")
        return self


@dataclass(frozen=True)
class TextTurn:
    user_key: str
    text: str
    message_id: Optional[str] = None

    @property
    def image_ref(self) -> None:
        return None


@dataclass(frozen=True)
class ImageTurn:
    user_key: str
    image_ref: str
    message_id: Optional[str] = None

    @property
    def text(self) -> str:
        return ""


@dataclass(frozen=True)
class TextImageTurn:
    user_key: str
    text: str
    image_ref: str
    message_id: Optional[str] = None


Turn = Union[TextTurn, ImageTurn, TextImageTurn]


def make_turn(
    user_key: str,
    text: str | None,
    image_ref: str | None,
    message_id: str | None = None,
) -> Turn:
    """Build the matching turn variant. Raises ValueError for an empty turn."""
    text = (text or "").strip()
    if text and image_ref:
        return TextImageTurn(user_key, text, image_ref, message_id)
    if image_ref:
        return ImageTurn(user_key, image_ref, message_id)
    if text:
        return TextTurn(user_key, text, message_id)
    raise ValueError("turn needs text or an image")


def has_image(turn: Turn) -> bool:
    return isinstance(turn, (ImageTurn, TextImageTurn))
