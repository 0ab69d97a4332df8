"""
Retriever - searches the catalog with several strategies and merges the results.
"""

import asyncio
import logging
import re
from typing import Protocol

from src.config import settings
from src.core.rag.models import RetrievedProduct
from src.core.rag.ranking import enhance_query_with_category, merge_by_identity, rerank_by_category
from src.core.text import redact_url

logger = logging.getLogger(__name__)

OPTIONS_PATTERN = re.compile(r"\b(recommend|show|what.*have|options|choices|all|any)\b", re.IGNORECASE)


def is_options_query(text: str) -> bool:
    """Recommendation or browse-all phrasing."""
    return bool(OPTIONS_PATTERN.search(text or ""))


class SearchBackend(Protocol):
    async def hybrid_search(
        self, query_text: str, vector: list[float], threshold: float, count: int
    ) -> list[RetrievedProduct]: ...

    async def vector_search(
        self, vector: list[float], threshold: float, count: int
    ) -> list[RetrievedProduct]: ...

    async def image_search(
        self, vector: list[float], threshold: float, count: int
    ) -> list[RetrievedProduct]: ...


class ProductRetriever:
    """
    Retrieves relevant products for a text query and/or an image.

    Up to three searches run in parallel: keyword+vector hybrid, pure vector
    with a stricter threshold, and image vector. A failing branch contributes
    nothing; the others still count.
    """

    def __init__(self, embedder=None, search: SearchBackend | None = None, image_fetcher=None):
        if embedder is None:
            from src.data.embeddings import get_embedding_service
            embedder = get_embedding_service()
        if search is None:
            from src.db.vector import vector_db
            search = vector_db
        if image_fetcher is None:
            from src.data.images import get_image_fetcher
            image_fetcher = get_image_fetcher()

        self.embedding_service = embedder
        self.search = search
        self.image_fetcher = image_fetcher

    async def retrieve(
        self,
        query: str,
        image_ref: str | None = None,
        match_count: int | None = None,
        min_similarity: float | None = None,
        strict: bool = False,
    ) -> list[RetrievedProduct]:
        """
        Search for products matching the query.

        Args:
            query: User's search query (may be empty for image-only turns)
            image_ref: URL of a user-sent image
            match_count: Result cap; defaults by query breadth
            min_similarity: Threshold for hybrid and image searches
            strict: Keep only category matches when the query names a category

        Returns:
            Products sorted by relevance, at most match_count
        """
        query = (query or "").strip()
        if match_count is None:
            match_count = (
                settings.rag_options_match_count if is_options_query(query) else settings.rag_match_count
            )
        if min_similarity is None:
            min_similarity = settings.rag_min_similarity
        strict_threshold = max(min_similarity, settings.rag_strict_similarity)

        text_vector, image_vector = await asyncio.gather(
            self._embed_text(query),
            self._embed_image(image_ref),
        )

        branches: list[tuple[str, object]] = []
        if text_vector is not None:
            branches.append(
                ("hybrid", self.search.hybrid_search(query, text_vector, min_similarity, match_count))
            )
            branches.append(
                ("vector", self.search.vector_search(text_vector, strict_threshold, match_count))
            )
        if image_vector is not None:
            branches.append(
                ("image", self.search.image_search(image_vector, min_similarity, match_count))
            )

        if not branches:
            return []

        outcomes = await asyncio.gather(*(coro for _, coro in branches), return_exceptions=True)

        result_sets = []
        for (name, _), outcome in zip(branches, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Search branch '{name}' failed: {outcome!r}")
                continue
            result_sets.append(outcome)

        merged = merge_by_identity(*result_sets)[:match_count]
        if query:
            merged = rerank_by_category(merged, query, strict=strict)

        logger.info(
            f"Retrieved {len(merged)} products "
            f"(branches={len(branches)}, top={merged[0].name if merged else None})"
        )
        return merged

    async def _embed_text(self, query: str) -> list[float] | None:
        if not query:
            return None
        try:
            return await self.embedding_service.embed_text(enhance_query_with_category(query))
        except Exception as e:
            logger.warning(f"Text embedding failed: {e!r}")
            return None

    async def _embed_image(self, image_ref: str | None) -> list[float] | None:
        if not image_ref:
            return None
        try:
            image = await self.image_fetcher.fetch(image_ref)
            return await self.embedding_service.embed_image(image)
        except Exception as e:
            logger.warning(f"Image embedding failed: {redact_url(repr(e))}")
            return None


def get_retriever() -> ProductRetriever:
    """Get retriever instance."""
    return ProductRetriever()
