"""Tests for the inbound gateway."""

import time

import pytest
from pydantic import ValidationError

from src.core.events import EventCoalescer, InboundEvent, InboundGateway, TextImageTurn
from src.core.safety import RateLimiter, ReplayCache


class RecordingHandler:
    def __init__(self, fail: bool = False):
        self.turns = []
        self.fail = fail

    async def handle(self, turn):
        self.turns.append(turn)
        if self.fail:
            raise RuntimeError("store down")
        return f"reply to {turn.text or 'image'}"


class RecordingOutbound:
    def __init__(self):
        self.sent = []

    async def deliver(self, user_key, response):
        self.sent.append((user_key, response))


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def outbound():
    return RecordingOutbound()


def make_gateway(handler, outbound, max_events=4, global_max=200, max_age=600):
    return InboundGateway(
        handler=handler,
        outbound=outbound,
        coalescer=EventCoalescer(wait=0.02, settle=0.01),
        user_limiter=RateLimiter(window=30, max_events=max_events),
        global_limiter=RateLimiter(window=30, max_events=global_max),
        replay_cache=ReplayCache(ttl=900),
        max_event_age=max_age,
    )


def event(text="hi", sender="tg:1", message_id=None, **kwargs) -> InboundEvent:
    return InboundEvent(sender_key=sender, text=text, message_id=message_id, **kwargs)


class TestAccepted:
    async def test_one_reply_per_turn(self, handler, outbound):
        gateway = make_gateway(handler, outbound)
        assert gateway.submit(event("red dress", message_id="1"))
        await gateway.aclose()

        assert outbound.sent == [("tg:1", "reply to red dress")]

    async def test_text_and_image_yield_one_reply(self, handler, outbound):
        gateway = make_gateway(handler, outbound)
        gateway.submit(event("do you have this?", message_id="1"))
        gateway.submit(event("", message_id="2", image_ref="https://img/1.jpg"))
        await gateway.aclose()

        assert len(outbound.sent) == 1
        assert isinstance(handler.turns[0], TextImageTurn)


class TestDropped:
    async def test_replayed_message_is_dropped(self, handler, outbound):
        gateway = make_gateway(handler, outbound)
        assert gateway.submit(event("hi", message_id="42"))
        assert not gateway.submit(event("hi", message_id="42"))
        await gateway.aclose()

        assert len(handler.turns) == 1
        assert len(outbound.sent) == 1

    async def test_rate_limited_event_is_dropped(self, handler, outbound):
        gateway = make_gateway(handler, outbound, max_events=2)
        assert gateway.submit(event("a", message_id="1"))
        assert gateway.submit(event("b", message_id="2"))
        assert not gateway.submit(event("c", message_id="3"))
        assert gateway.user_limiter.score("tg:1") == 1
        await gateway.aclose()

    async def test_other_users_unaffected_by_rate_limit(self, handler, outbound):
        gateway = make_gateway(handler, outbound, max_events=1)
        gateway.submit(event("a", sender="tg:1"))
        assert not gateway.submit(event("b", sender="tg:1"))
        assert gateway.submit(event("c", sender="tg:2"))
        await gateway.aclose()

    async def test_global_limit(self, handler, outbound):
        gateway = make_gateway(handler, outbound, global_max=2)
        gateway.submit(event("a", sender="tg:1"))
        gateway.submit(event("b", sender="tg:2"))
        assert not gateway.submit(event("c", sender="tg:3"))
        await gateway.aclose()

    async def test_stale_event_is_dropped(self, handler, outbound):
        gateway = make_gateway(handler, outbound, max_age=600)
        assert not gateway.submit(event("old", timestamp=time.time() - 601))
        await gateway.aclose()
        assert handler.turns == []


class TestFailures:
    async def test_handler_failure_sends_nothing(self, outbound):
        gateway = make_gateway(RecordingHandler(fail=True), outbound)
        gateway.submit(event("hi"))
        await gateway.aclose()
        assert outbound.sent == []


class TestInboundEvent:
    def test_long_text_is_clamped(self):
        assert len(event("x" * 5000).text) == 800

    def test_needs_text_or_image(self):
        with pytest.raises(ValidationError):
            InboundEvent(sender_key="tg:1", text="")

    def test_image_ref_must_be_url(self):
        with pytest.raises(ValidationError):
            InboundEvent(sender_key="tg:1", image_ref="file:///etc/passwd")
