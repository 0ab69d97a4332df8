"""
Script to check what the retriever returns for a query.
Run: python -m scripts.check_catalog "red dress"
"""

import argparse
import asyncio
import sys
sys.path.insert(0, '.')

from src.config import settings
from src.core.rag.ranking import extract_categories
from src.core.rag.retriever import get_retriever
from src.db.vector import vector_db


async def main(query: str, strict: bool) -> None:
    print(f"Collection: {vector_db.collection_name}")
    print(f"Total products: {await vector_db.count()}\n")

    print("=" * 50)
    print(f"QUERY: {query!r}  categories={sorted(extract_categories(query))}")
    print("=" * 50)

    products = await get_retriever().retrieve(
        query,
        match_count=settings.rag_options_match_count,
        min_similarity=settings.rag_min_similarity,
        strict=strict,
    )

    for product in products:
        print(f"{product.similarity:.3f}  {product.name}")
        print(f"       id={product.id} category={product.category} price={product.price}")

    if not products:
        print("No products found")

    await vector_db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a catalog query")
    parser.add_argument("query")
    parser.add_argument("--strict", action="store_true", help="Keep only category matches")
    args = parser.parse_args()
    asyncio.run(main(args.query, args.strict))
