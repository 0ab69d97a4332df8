"""
Inbound events: parsing, coalescing and safety gating.
"""

from src.core.events.coalescer import EventCoalescer
from src.core.events.gateway import InboundGateway
from src.core.events.turns import (
    ImageTurn,
    InboundEvent,
    TextImageTurn,
    TextTurn,
    Turn,
    has_image,
    make_turn,
)

__all__ = [
    "EventCoalescer",
    "InboundGateway",
    "InboundEvent",
    "ImageTurn",
    "TextImageTurn",
    "TextTurn",
    "Turn",
    "has_image",
    "make_turn",
]
