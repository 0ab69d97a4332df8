"""
Generator - produces replies with the LLM, guarded by cache, de-duplication
and a circuit breaker. Always returns some text, even when the model is down.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass

from src.config import settings
from src.core.rag.models import RetrievedProduct
from src.core.rag.prompts import (
    FALLBACK_EMPTY,
    FALLBACK_ERROR,
    FALLBACK_UNAVAILABLE,
    SUMMARY_SYSTEM_PROMPT,
    build_context_preamble,
)
from src.core.safety import CircuitBreaker, RequestDeduplicator, ResponseCache, RetryPolicy
from src.core.text import Language, clamp_text, detect_language, sanitize_input, strip_markdown
from src.integrations.llm import BaseLLM, ChatMessage, get_default_llm

logger = logging.getLogger(__name__)

SUMMARY_HISTORY_LIMIT = 50
SUMMARY_INPUT_CHARS = 6000
SUMMARY_MAX_CHARS = 1000
SUMMARY_MAX_TOKENS = 250
SUMMARY_TEMPERATURE = 0.2


@dataclass
class GeneratedReply:
    """Reply text and the language it was written in."""

    text: str
    language: Language
    from_cache: bool = False
    fallback: bool = False


class ResponseGenerator:
    """Generates chat replies from history, lead facts and retrieved products."""

    def __init__(
        self,
        llm: BaseLLM | None = None,
        store=None,
        retriever=None,
        breaker: CircuitBreaker | None = None,
        cache: ResponseCache | None = None,
        deduplicator: RequestDeduplicator | None = None,
        retry: RetryPolicy | None = None,
        timeout: float | None = None,
    ):
        self.llm = llm or get_default_llm()
        self.store = store
        self.retriever = retriever
        self.breaker = breaker or CircuitBreaker()
        self.cache = cache or ResponseCache()
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.retry = retry or RetryPolicy()
        self.timeout = timeout or settings.llm_timeout

    async def reply(
        self,
        user_key: str,
        text: str,
        lead=None,
        pre_retrieved: list[RetrievedProduct] | None = None,
        language: Language | None = None,
    ) -> GeneratedReply:
        """
        Generate a reply for one user turn.

        Args:
            user_key: Conversation owner
            text: User message (or an image marker message)
            lead: Lead whose known details go into the context
            pre_retrieved: Products already retrieved for this turn; None to search here
            language: Reply language; detected from text when omitted

        Returns:
            GeneratedReply, possibly a fixed fallback
        """
        safe_text = clamp_text(sanitize_input(text), settings.max_message_chars)
        language = language or detect_language(text)

        if self.breaker.is_open():
            logger.warning("Circuit breaker is open, returning fallback")
            return GeneratedReply(FALLBACK_UNAVAILABLE[language], language, fallback=True)

        key = self._cache_key(user_key, safe_text, language, lead, pre_retrieved)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {user_key}")
            return GeneratedReply(cached.response_text, cached.language, from_cache=True)

        # The key is per user and the state machine already serializes each
        # user's turns, so joins only happen between direct reply() callers
        return await self.deduplicator.run(
            key,
            lambda: self._generate(key, user_key, text, safe_text, language, lead, pre_retrieved),
        )

    @staticmethod
    def _cache_key(user_key, safe_text, language, lead, products) -> str:
        product_ids = ",".join(sorted(p.id for p in products)) if products else ""
        raw = "\x1f".join(
            [user_key, language, safe_text.lower(), str(lead is not None), product_ids]
        )
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    async def _generate(
        self,
        key: str,
        user_key: str,
        raw_text: str,
        safe_text: str,
        language: Language,
        lead,
        pre_retrieved: list[RetrievedProduct] | None,
    ) -> GeneratedReply:
        if not self.breaker.allow():
            return GeneratedReply(FALLBACK_UNAVAILABLE[language], language, fallback=True)

        try:
            history, summary, products = await asyncio.gather(
                self._load_history(user_key, raw_text),
                self._load_summary(user_key),
                self._load_products(safe_text, pre_retrieved),
            )

            messages = [
                ChatMessage(
                    role="system",
                    content=build_context_preamble(language, lead, summary, products),
                ),
                *history,
                ChatMessage(role="user", content=safe_text),
            ]

            response = await self.retry.call(
                lambda: self.llm.complete(
                    messages,
                    max_tokens=settings.llm_max_tokens,
                    temperature=settings.llm_temperature,
                ),
                timeout=self.timeout,
            )
        except asyncio.CancelledError:
            self.breaker.release()
            raise
        except Exception as e:
            self.breaker.record_failure()
            logger.error(f"LLM reply failed for {user_key}: {e!r}")
            return GeneratedReply(FALLBACK_ERROR[language], language, fallback=True)

        self.breaker.record_success()

        content = (response.content or "").strip()
        if not content:
            logger.warning(f"Empty response from {self.llm.name}")
            return GeneratedReply(FALLBACK_EMPTY[language], language, fallback=True)

        final = clamp_text(strip_markdown(content), settings.max_message_chars)
        self.cache.set(key, final, language)

        logger.info(
            f"Reply generated for {user_key} "
            f"(history={len(history)}, products={len(products)}, tokens={response.tokens_used})"
        )
        return GeneratedReply(final, language)

    async def _load_history(self, user_key: str, current_text: str) -> list[ChatMessage]:
        if self.store is None:
            return []
        try:
            recent = await self.store.get_recent_messages(user_key, settings.history_limit)
        except Exception as e:
            logger.warning(f"Could not load history for {user_key}: {e!r}")
            return []

        # The current message is usually already stored
        if recent and recent[-1].role == "user" and recent[-1].content == current_text:
            recent = recent[:-1]

        return [
            ChatMessage(
                role="assistant" if m.role == "assistant" else "user",
                content=clamp_text(sanitize_input(m.content), settings.max_message_chars),
            )
            for m in recent
        ]

    async def _load_summary(self, user_key: str) -> str | None:
        if self.store is None:
            return None
        try:
            return await self.store.get_summary(user_key)
        except Exception as e:
            logger.warning(f"Could not load summary for {user_key}: {e!r}")
            return None

    async def _load_products(
        self, query: str, pre_retrieved: list[RetrievedProduct] | None
    ) -> list[RetrievedProduct]:
        if pre_retrieved is not None:
            return pre_retrieved
        if self.retriever is None or not query:
            return []
        try:
            return await self.retriever.retrieve(query)
        except Exception as e:
            logger.warning(f"Retrieval for reply context failed: {e!r}")
            return []

    async def refresh_summary(self, user_key: str) -> bool:
        """
        Re-summarize a long conversation.

        Returns:
            True when a new summary was stored
        """
        if self.store is None or self.breaker.is_open():
            return False

        recent = await self.store.get_recent_messages(user_key, SUMMARY_HISTORY_LIMIT)
        if len(recent) < settings.summary_min_messages:
            return False

        transcript = "\n".join(
            f"{m.role.upper()}: {sanitize_input(m.content)}" for m in recent
        )[:SUMMARY_INPUT_CHARS]

        if not self.breaker.allow():
            return False

        try:
            response = await self.retry.call(
                lambda: self.llm.generate(
                    transcript,
                    system_prompt=SUMMARY_SYSTEM_PROMPT,
                    temperature=SUMMARY_TEMPERATURE,
                    max_tokens=SUMMARY_MAX_TOKENS,
                ),
                timeout=self.timeout,
            )
        except asyncio.CancelledError:
            self.breaker.release()
            raise
        except Exception as e:
            self.breaker.record_failure()
            logger.error(f"Failed to generate thread summary for {user_key}: {e!r}")
            return False

        self.breaker.record_success()
        summary = clamp_text(sanitize_input(response.content), SUMMARY_MAX_CHARS)
        if not summary:
            logger.warning(f"Empty summary generated for {user_key}")
            return False

        await self.store.update_summary(user_key, summary, len(recent))
        logger.info(f"Thread summary updated for {user_key} ({len(recent)} messages)")
        return True
