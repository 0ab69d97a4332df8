"""Tests for the reply generator."""

import asyncio

import pytest
from conftest import FakeLLM, product

from src.core.orders.models import Lead
from src.core.rag.generator import ResponseGenerator
from src.core.rag.prompts import FALLBACK_EMPTY, FALLBACK_ERROR, FALLBACK_UNAVAILABLE
from src.core.safety import BreakerState, CircuitBreaker, RequestDeduplicator, ResponseCache, RetryPolicy


class DirectCalls:
    """Runs every request itself, so cancelling the caller reaches the model call."""

    async def run(self, key, factory):
        return await factory()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(threshold=2, reset_timeout=60, clock=clock)


@pytest.fixture
def make_generator(store, breaker, clock):
    def build(llm: FakeLLM, retriever=None) -> ResponseGenerator:
        return ResponseGenerator(
            llm=llm,
            store=store,
            retriever=retriever,
            breaker=breaker,
            cache=ResponseCache(ttl=300, clock=clock),
            deduplicator=RequestDeduplicator(),
            retry=RetryPolicy(max_attempts=1),
            timeout=1,
        )
    return build


class TestReply:
    async def test_returns_model_text(self, make_generator):
        llm = FakeLLM(["We have **Blue Sneakers** for $49."])
        reply = await make_generator(llm).reply("u1", "blue sneakers", pre_retrieved=[])

        assert reply.text == "We have Blue Sneakers for $49."
        assert reply.language == "en"
        assert not reply.fallback

    async def test_second_identical_request_hits_cache(self, make_generator):
        llm = FakeLLM(["first answer", "second answer"])
        generator = make_generator(llm)

        await generator.reply("u1", "blue sneakers", pre_retrieved=[])
        reply = await generator.reply("u1", "Blue Sneakers ", pre_retrieved=[])

        assert reply.text == "first answer"
        assert reply.from_cache
        assert len(llm.calls) == 1

    async def test_cache_is_per_user(self, make_generator):
        llm = FakeLLM(["for u1", "for u2"])
        generator = make_generator(llm)
        await generator.reply("u1", "hello there", pre_retrieved=[])
        reply = await generator.reply("u2", "hello there", pre_retrieved=[])
        assert reply.text == "for u2"

    async def test_concurrent_identical_requests_share_one_call(self, make_generator):
        llm = FakeLLM(["shared"], delay=0.02)
        generator = make_generator(llm)

        replies = await asyncio.gather(
            *(generator.reply("u1", "any jackets?", pre_retrieved=[]) for _ in range(3))
        )

        assert [r.text for r in replies] == ["shared"] * 3
        assert len(llm.calls) == 1

    async def test_long_reply_is_clamped(self, make_generator):
        llm = FakeLLM(["x" * 2000])
        reply = await make_generator(llm).reply("u1", "tell me everything", pre_retrieved=[])
        assert len(reply.text) == 801

    async def test_empty_output_falls_back_uncached(self, make_generator):
        llm = FakeLLM(["   ", "real answer"])
        generator = make_generator(llm)

        first = await generator.reply("u1", "hmm", pre_retrieved=[])
        second = await generator.reply("u1", "hmm", pre_retrieved=[])

        assert first.text == FALLBACK_EMPTY["en"]
        assert first.fallback
        assert second.text == "real answer"


class TestContext:
    async def test_history_products_and_lead_in_prompt(self, make_generator, store):
        await store.append_message("u1", "user", "hi")
        await store.append_message("u1", "assistant", "Hello! How can I help?")
        await store.append_message("u1", "user", "blue sneakers")
        lead = Lead(user_key="u1", tenant_id="test", name="Jane", phone="012345678")
        llm = FakeLLM()

        await make_generator(llm).reply(
            "u1", "blue sneakers", lead=lead,
            pre_retrieved=[product("p1", "Blue Running Sneakers", 0.8)],
        )

        messages = llm.calls[0]
        assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
        system = messages[0].content
        assert "Blue Running Sneakers" in system
        assert "Name: Jane" in system
        assert "***5678" in system
        assert "012345678" not in system

    async def test_uses_retriever_without_pre_retrieved(self, make_generator, retriever_factory, sneaker_search):
        llm = FakeLLM()
        await make_generator(llm, retriever_factory(sneaker_search)).reply("u1", "blue sneakers")
        assert "Blue Running Sneakers" in llm.calls[0][0].content

    async def test_khmer_gets_khmer_instructions(self, make_generator):
        llm = FakeLLM()
        reply = await make_generator(llm).reply("u1", "សួស្តី", pre_retrieved=[])
        assert reply.language == "km"
        assert "ភាសាខ្មែរ" in llm.calls[0][0].content


class TestFailures:
    async def test_backend_error_returns_fallback(self, make_generator, breaker):
        reply = await make_generator(FakeLLM(fail=True)).reply("u1", "hi there", pre_retrieved=[])
        assert reply.text == FALLBACK_ERROR["en"]
        assert breaker.failures == 1

    async def test_breaker_opens_after_threshold_and_skips_backend(self, make_generator, breaker):
        llm = FakeLLM(fail=True)
        generator = make_generator(llm)

        await generator.reply("u1", "one", pre_retrieved=[])
        await generator.reply("u1", "two", pre_retrieved=[])
        assert breaker.state is BreakerState.OPEN

        reply = await generator.reply("u1", "three", pre_retrieved=[])
        assert reply.text == FALLBACK_UNAVAILABLE["en"]
        assert len(llm.calls) == 2

    async def test_breaker_fallback_in_khmer(self, make_generator, breaker):
        breaker.record_failure()
        breaker.record_failure()
        reply = await make_generator(FakeLLM()).reply("u1", "សួស្តី", pre_retrieved=[])
        assert reply.text == FALLBACK_UNAVAILABLE["km"]

    async def test_one_call_allowed_after_timeout(self, make_generator, breaker, clock):
        llm = FakeLLM(fail=True)
        generator = make_generator(llm)
        await generator.reply("u1", "one", pre_retrieved=[])
        await generator.reply("u1", "two", pre_retrieved=[])

        clock.advance(60)
        llm.fail = False
        reply = await generator.reply("u1", "three", pre_retrieved=[])

        assert not reply.fallback
        assert len(llm.calls) == 3
        assert breaker.state is BreakerState.CLOSED

    async def test_cancelled_trial_call_frees_the_breaker(self, store, breaker, clock):
        breaker.record_failure()
        breaker.record_failure()
        clock.advance(60)
        llm = FakeLLM(["back online"], delay=0.5)
        generator = ResponseGenerator(
            llm=llm,
            store=store,
            breaker=breaker,
            cache=ResponseCache(ttl=300, clock=clock),
            deduplicator=DirectCalls(),
            retry=RetryPolicy(max_attempts=1),
            timeout=1,
        )

        task = asyncio.create_task(generator.reply("u1", "first", pre_retrieved=[]))
        await asyncio.sleep(0.05)
        assert breaker.is_open()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not breaker.is_open()
        llm.delay = 0
        reply = await generator.reply("u1", "second", pre_retrieved=[])
        assert reply.text == "back online"
        assert breaker.state is BreakerState.CLOSED

    async def test_success_decrements_failures(self, make_generator, breaker):
        llm = FakeLLM(fail=True)
        generator = make_generator(llm)
        await generator.reply("u1", "one", pre_retrieved=[])
        llm.fail = False
        await generator.reply("u1", "two", pre_retrieved=[])
        assert breaker.failures == 0


class TestSummary:
    async def test_refresh_needs_enough_messages(self, make_generator, store):
        for i in range(5):
            await store.append_message("u1", "user", f"message {i}")
        assert await make_generator(FakeLLM()).refresh_summary("u1") is False
        assert "u1" not in store.summaries

    async def test_refresh_stores_summary(self, make_generator, store):
        for i in range(20):
            await store.append_message("u1", "user" if i % 2 == 0 else "assistant", f"message {i}")
        llm = FakeLLM(["- wants blue sneakers size 42"])

        assert await make_generator(llm).refresh_summary("u1") is True
        assert store.summaries["u1"] == "- wants blue sneakers size 42"
        assert llm.calls[0][0].role == "system"
