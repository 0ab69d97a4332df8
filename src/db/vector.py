"""
Qdrant vector database client for product search.

One collection, two named vectors per product: "text" for the description
embedding and "image" for the CLIP embedding of the product photo.
"""

import logging
import re
import uuid
from typing import Optional

from qdrant_client import AsyncQdrantClient, models

from src.config import settings
from src.core.rag.models import RetrievedProduct

logger = logging.getLogger(__name__)

TEXT_VECTOR = "text"
IMAGE_VECTOR = "image"

STOPWORDS = {
    "the", "and", "for", "with", "you", "your", "have", "any", "show", "what", "want",
    "need", "looking", "some", "this", "that", "like", "can", "please", "are", "there",
}


def query_keywords(text: str) -> list[str]:
    """Lexical terms worth matching against the full-text index."""
    words = re.findall(r"[\w-]+", text.lower())
    seen = []
    for word in words:
        if len(word) >= 3 and word not in STOPWORDS and word not in seen:
            seen.append(word)
    return seen


def point_id(product_id: str, tenant_id: str | None = None) -> str:
    """Stable Qdrant point id for a catalog product id, distinct per tenant."""
    name = f"product:{tenant_id}:{product_id}" if tenant_id else f"product:{product_id}"
    return str(uuid.uuid5(uuid.NAMESPACE_URL, name))


def search_filter(tenant_id: str | None = None, keywords: list[str] | None = None) -> models.Filter | None:
    """
    Payload filter for a search.

    The tenant condition is mandatory when given; keywords only need one hit.
    """
    must = None
    if tenant_id:
        must = [models.FieldCondition(key="tenant_id", match=models.MatchValue(value=tenant_id))]
    should = None
    if keywords:
        should = [
            models.FieldCondition(key="search_text", match=models.MatchText(text=keyword))
            for keyword in keywords
        ]
    if must is None and should is None:
        return None
    return models.Filter(must=must, should=should)


class VectorDB:
    """Qdrant vector database manager."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        collection_name: str | None = None,
        tenant_id: str | None = None,
    ):
        self.host = host or settings.qdrant_host
        self.port = port or settings.qdrant_port
        self.collection_name = collection_name or settings.qdrant_collection_name
        # None searches the whole collection
        self.tenant_id = tenant_id
        self._client: Optional[AsyncQdrantClient] = None

    @property
    def client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            self._client = AsyncQdrantClient(host=self.host, port=self.port)
        return self._client

    async def init_collection(
        self,
        text_size: int | None = None,
        image_size: int | None = None,
        recreate: bool = False,
    ) -> None:
        """Initialize collection for product embeddings."""
        text_size = text_size or settings.embedding_dimension
        image_size = image_size or settings.image_embedding_dimension

        if recreate and await self.client.collection_exists(self.collection_name):
            await self.client.delete_collection(self.collection_name)

        if await self.client.collection_exists(self.collection_name):
            return

        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config={
                TEXT_VECTOR: models.VectorParams(size=text_size, distance=models.Distance.COSINE),
                IMAGE_VECTOR: models.VectorParams(size=image_size, distance=models.Distance.COSINE),
            },
        )

        # Payload indexes for keyword matching and filtering
        await self.client.create_payload_index(
            collection_name=self.collection_name,
            field_name="search_text",
            field_schema=models.TextIndexParams(
                type=models.TextIndexType.TEXT,
                tokenizer=models.TokenizerType.WORD,
                lowercase=True,
            ),
        )
        await self.client.create_payload_index(
            collection_name=self.collection_name,
            field_name="category",
            field_schema=models.PayloadSchemaType.KEYWORD,
        )
        await self.client.create_payload_index(
            collection_name=self.collection_name,
            field_name="tenant_id",
            field_schema=models.PayloadSchemaType.KEYWORD,
        )
        logger.info(f"Created Qdrant collection '{self.collection_name}'")

    async def upsert_products(
        self,
        products: list[dict],
        text_vectors: list[list[float]],
        image_vectors: list[Optional[list[float]]] | None = None,
    ) -> None:
        """Insert or update products. Products without a photo get no image vector."""
        image_vectors = image_vectors or [None] * len(products)
        points = []
        for product, text_vector, image_vector in zip(products, text_vectors, image_vectors):
            vectors = {TEXT_VECTOR: text_vector}
            if image_vector is not None:
                vectors[IMAGE_VECTOR] = image_vector
            payload = dict(product)
            if self.tenant_id:
                payload["tenant_id"] = self.tenant_id
            points.append(
                models.PointStruct(
                    id=point_id(str(product["product_id"]), self.tenant_id),
                    vector=vectors,
                    payload=payload,
                )
            )
        await self.client.upsert(collection_name=self.collection_name, points=points)

    async def _query(
        self,
        vector: list[float],
        using: str,
        threshold: float,
        count: int,
        query_filter: models.Filter | None = None,
    ) -> list[RetrievedProduct]:
        if query_filter is None:
            query_filter = search_filter(self.tenant_id)
        response = await self.client.query_points(
            collection_name=self.collection_name,
            query=vector,
            using=using,
            query_filter=query_filter,
            limit=count,
            score_threshold=threshold,
            with_payload=True,
        )
        return [
            RetrievedProduct.from_payload(point.id, point.score, point.payload or {})
            for point in response.points
        ]

    async def hybrid_search(
        self,
        query_text: str,
        vector: list[float],
        threshold: float,
        count: int,
    ) -> list[RetrievedProduct]:
        """
        Vector search restricted to products sharing a keyword with the query.

        Args:
            query_text: Raw user query for lexical matching
            vector: Query embedding
            threshold: Minimum similarity
            count: Maximum results

        Returns:
            Matching products, best first
        """
        query_filter = search_filter(self.tenant_id, query_keywords(query_text))
        return await self._query(vector, TEXT_VECTOR, threshold, count, query_filter)

    async def vector_search(
        self,
        vector: list[float],
        threshold: float,
        count: int,
    ) -> list[RetrievedProduct]:
        """Pure semantic search on the text vector."""
        return await self._query(vector, TEXT_VECTOR, threshold, count)

    async def image_search(
        self,
        vector: list[float],
        threshold: float,
        count: int,
    ) -> list[RetrievedProduct]:
        """Visual search on the product photo vector."""
        return await self._query(vector, IMAGE_VECTOR, threshold, count)

    async def count(self) -> int:
        result = await self.client.count(
            collection_name=self.collection_name,
            count_filter=search_filter(self.tenant_id),
            exact=True,
        )
        return result.count

    async def delete_all(self) -> None:
        """Delete the whole collection."""
        if await self.client.collection_exists(self.collection_name):
            await self.client.delete_collection(self.collection_name)

    async def close(self) -> None:
        """Close client connection."""
        if self._client:
            await self._client.close()
            self._client = None


# Global vector DB instance
vector_db = VectorDB(tenant_id=settings.tenant_id)
