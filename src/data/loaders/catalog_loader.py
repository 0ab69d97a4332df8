"""
Catalog loader - embeds parsed products and imports them into the vector store.
"""

import logging
from pathlib import Path

from src.data.embeddings import EmbeddingService  # Must be before parsers (torch DLL loading order)
from src.data.images import ImageFetcher, ImageFetchError
from src.data.parsers import CatalogProduct, parse_catalog_file
from src.db.vector import VectorDB, vector_db

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Loads catalog data into Qdrant."""

    def __init__(
        self,
        embedding_service: EmbeddingService | None = None,
        store: VectorDB | None = None,
        image_fetcher: ImageFetcher | None = None,
        batch_size: int = 64,
    ):
        self.embedding_service = embedding_service or EmbeddingService()
        self.store = store or vector_db
        self.image_fetcher = image_fetcher or ImageFetcher()
        self.batch_size = batch_size

    async def _image_vector(self, product: CatalogProduct) -> list[float] | None:
        if not product.image_url:
            return None
        try:
            image = await self.image_fetcher.fetch(product.image_url)
        except ImageFetchError as e:
            logger.warning(f"No image vector for {product.product_id}: {e}")
            return None
        return await self.embedding_service.embed_image(image)

    async def load_products(self, products: list[CatalogProduct], with_images: bool = True) -> dict:
        """
        Embed and upsert products in batches.

        Returns:
            Statistics about loaded data
        """
        stats = {"total_products": len(products), "with_images": 0}

        for start in range(0, len(products), self.batch_size):
            batch = products[start:start + self.batch_size]
            text_vectors = self.embedding_service.encode_documents([p.search_text for p in batch])

            image_vectors = []
            for product in batch:
                vector = await self._image_vector(product) if with_images else None
                if vector is not None:
                    stats["with_images"] += 1
                image_vectors.append(vector)

            await self.store.upsert_products(
                [p.to_payload() for p in batch],
                text_vectors,
                image_vectors,
            )
            logger.info(f"Upserted products {start + 1}-{start + len(batch)} of {len(products)}")

        return stats

    async def load_file(self, file_path: str | Path, with_images: bool = True) -> dict:
        """
        Load catalog from file into the vector store.

        Args:
            file_path: Path to XLSX or CSV file
            with_images: Also download photos and build image vectors

        Returns:
            Statistics about loaded data
        """
        file_path = Path(file_path)
        products = parse_catalog_file(file_path)
        logger.info(f"Parsed {len(products)} products from {file_path.name}")

        await self.store.init_collection()
        stats = await self.load_products(products, with_images=with_images)
        stats["file"] = file_path.name
        return stats


async def load_catalog(file_path: str | Path, with_images: bool = True) -> dict:
    """Convenience function to load a catalog file."""
    return await CatalogLoader().load_file(file_path, with_images=with_images)
