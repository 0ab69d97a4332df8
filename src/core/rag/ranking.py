"""
Merging and category-aware ranking of search results.

Several search strategies run per request. Their result lists are merged by
product identity, keeping the best score any single strategy produced, and
then optionally re-ranked by the clothing category the query mentions.
"""

import re
from typing import Iterable

from src.config import settings
from src.core.rag.models import RetrievedProduct

# Category -> synonyms. The first three of each list are appended to queries.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "shoes": ["shoe", "shoes", "sneaker", "sneakers", "boot", "boots", "sandal", "sandals", "footwear", "kicks"],
    "pants": ["pant", "pants", "trouser", "trousers", "jeans", "slacks", "chinos", "jogger", "joggers", "leggings", "bottoms"],
    "shirts": ["shirt", "shirts", "t-shirt", "tshirt", "tee", "polo", "blouse", "top", "tops"],
    "jackets": [
        "jacket", "jackets", "coat", "coats", "blazer", "blazers", "parka", "windbreaker",
        "hoodie", "hoodies", "sweater", "sweaters", "cardigan", "outerwear",
    ],
    "dresses": ["dress", "dresses", "gown", "gowns", "skirt", "skirts"],
    "accessories": [
        "hat", "hats", "cap", "caps", "bag", "bags", "belt", "belts", "scarf", "scarves",
        "gloves", "socks", "watch", "watches", "jewelry", "accessory", "accessories",
    ],
    "sportswear": ["sport", "sports", "athletic", "workout", "gym", "fitness", "training", "running", "yoga", "activewear"],
}

_WHOLE_WORD = {
    category: [re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in words]
    for category, words in CATEGORY_KEYWORDS.items()
}
_WORD_PREFIX = {
    category: [re.compile(rf"\b{re.escape(word)}", re.IGNORECASE) for word in words]
    for category, words in CATEGORY_KEYWORDS.items()
}


def extract_categories(query: str) -> list[str]:
    """Categories whose keywords appear as whole words in the query."""
    return [
        category
        for category, patterns in _WHOLE_WORD.items()
        if any(p.search(query) for p in patterns)
    ]


def enhance_query_with_category(query: str) -> str:
    """Append leading synonyms of detected categories to sharpen the embedding."""
    categories = extract_categories(query)
    if not categories:
        return query
    boost = " ".join(word for c in categories for word in CATEGORY_KEYWORDS[c][:3])
    return f"{query} {boost}".strip()


def product_matches_category(name: str, category: str | None, categories: list[str]) -> bool:
    if not categories:
        return True
    for c in categories:
        for pattern in _WORD_PREFIX[c]:
            if pattern.search(name) or pattern.search(category or ""):
                return True
    return False


def merge_by_identity(*result_sets: Iterable[RetrievedProduct]) -> list[RetrievedProduct]:
    """
    Merge result lists by product id, keeping the highest-scoring occurrence.

    The output is sorted by score descending with id as tie-breaker, so it
    does not depend on the order of the input lists.
    """
    best: dict[str, RetrievedProduct] = {}
    for results in result_sets:
        for product in results:
            current = best.get(product.id)
            if current is None or product.similarity > current.similarity:
                best[product.id] = product
    return sorted(best.values(), key=lambda p: (-p.similarity, p.id))


def rerank_by_category(
    products: list[RetrievedProduct],
    query: str,
    strict: bool = False,
    boost: float | None = None,
    penalty: float | None = None,
    strict_penalty: float | None = None,
) -> list[RetrievedProduct]:
    """
    Reorder by category relevance to the query.

    Matching products are boosted and the rest penalized (harder in strict
    mode). Strict mode also drops non-matches whenever at least one product
    matches. Reported similarity values are left unchanged.

    Args:
        products: Candidates in merged order
        query: Raw user query
        strict: Drop non-matching products when a match exists

    Returns:
        New list ordered by adjusted score
    """
    categories = extract_categories(query)
    if not categories:
        return list(products)

    boost = boost or settings.category_boost
    miss = (strict_penalty or settings.category_strict_penalty) if strict else (
        penalty or settings.category_penalty
    )

    scored = []
    for product in products:
        matches = product_matches_category(product.name, product.category, categories)
        adjusted = product.similarity * (boost if matches else miss)
        scored.append((adjusted, matches, product))

    scored.sort(key=lambda item: -item[0])

    if strict and any(matches for _, matches, _ in scored):
        return [p for _, matches, p in scored if matches]
    return [p for _, _, p in scored]
