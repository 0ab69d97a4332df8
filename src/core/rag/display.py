"""
Choosing which retrieved products to show next to a reply.
"""

import logging
import re

from src.config import settings
from src.core.rag.models import RetrievedProduct
from src.core.rag.retriever import is_options_query

logger = logging.getLogger(__name__)

PRODUCT_REPLY_PATTERN = re.compile(
    r"\b(product|shirt|shoe|pant|item|price|size|available|stock|buy|purchase|order|recommend|yes.*available)\b",
    re.IGNORECASE,
)

GENERAL_QUERY_WORDS = 3
BROAD_DISPLAY = 5
NARROW_DISPLAY = 3
SIGNIFICANT_WORD_LENGTH = 3


def display_limit(query: str, available: int, from_image: bool) -> int:
    """How many products the query's breadth warrants."""
    if from_image:
        return 1
    if is_options_query(query) or len(query.split()) <= GENERAL_QUERY_WORDS:
        return min(available, BROAD_DISPLAY)
    return min(available, NARROW_DISPLAY)


def mentioned_products(reply: str, products: list[RetrievedProduct]) -> list[RetrievedProduct]:
    """Products the reply names in full or by at least two significant words."""
    lower = reply.lower()
    found = []
    for product in products:
        name = product.name.lower()
        if name and name in lower:
            found.append(product)
            continue
        words = [w for w in name.split() if len(w) > SIGNIFICANT_WORD_LENGTH]
        if len(words) >= 2 and sum(1 for w in words if w in lower) >= 2:
            found.append(product)
    return found


def should_show_products(reply: str, products: list[RetrievedProduct]) -> bool:
    if not products:
        return False
    return bool(PRODUCT_REPLY_PATTERN.search(reply)) or bool(mentioned_products(reply, products))


def select_display_products(
    reply: str,
    products: list[RetrievedProduct],
    query: str,
    from_image: bool = False,
    min_similarity: float | None = None,
) -> list[RetrievedProduct]:
    """
    Pick products for the carousel.

    Products the reply talks about come first; otherwise the best matches
    above the similarity floor; if nothing clears the floor, the top product
    is shown anyway.
    """
    if not should_show_products(reply, products):
        return []

    if min_similarity is None:
        min_similarity = settings.display_min_similarity
    limit = display_limit(query, len(products), from_image)

    mentioned = [p for p in mentioned_products(reply, products) if p.similarity >= min_similarity]
    if mentioned:
        logger.debug(f"Showing {min(len(mentioned), limit)} products named in the reply")
        return mentioned[:limit]

    top = [p for p in products if p.similarity >= min_similarity][:limit]
    if top:
        return top

    logger.debug(f"No product above {min_similarity}, showing top match anyway")
    return products[:1]
