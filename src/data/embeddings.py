"""
Embedding service using sentence-transformers.
Runs locally, no API costs. Text and images use separate models.
"""

import asyncio
from functools import lru_cache

import numpy as np
from PIL import Image
from sentence_transformers import SentenceTransformer

from src.config import settings


class EmbeddingService:
    """Service for generating text and image embeddings."""

    def __init__(
        self,
        model_name: str | None = None,
        image_model_name: str | None = None,
    ):
        self.model_name = model_name or settings.embedding_model
        self.image_model_name = image_model_name or settings.image_embedding_model
        self._model: SentenceTransformer | None = None
        self._image_model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy load the text model."""
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    @property
    def image_model(self) -> SentenceTransformer:
        """Lazy load the CLIP model."""
        if self._image_model is None:
            self._image_model = SentenceTransformer(self.image_model_name)
        return self._image_model

    def encode(
        self,
        texts: str | list[str],
        normalize: bool = True,
        prefix: str = "query",
    ) -> np.ndarray:
        """
        Generate embeddings for texts.

        Args:
            texts: Single text or list of texts
            normalize: Whether to L2-normalize vectors
            prefix: E5 instruction prefix ('query' or 'passage')

        Returns:
            Numpy array of shape (n_texts, embedding_dim)
        """
        if isinstance(texts, str):
            texts = [texts]

        # Add instruction prefix for E5 models
        if "e5" in self.model_name.lower():
            texts = [f"{prefix}: {t}" for t in texts]

        return self.model.encode(
            texts,
            normalize_embeddings=normalize,
            show_progress_bar=False,
        )

    def encode_query(self, query: str) -> list[float]:
        """Encode a single query and return as list."""
        return self.encode(query)[0].tolist()

    def encode_documents(self, texts: list[str]) -> list[list[float]]:
        """Encode catalog entries for indexing."""
        return self.encode(texts, prefix="passage").tolist()

    def encode_image(self, image: Image.Image) -> list[float]:
        """Encode one image with the CLIP model."""
        embedding = self.image_model.encode(
            [image.convert("RGB")],
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return embedding[0].tolist()

    async def embed_text(self, text: str) -> list[float]:
        """Encode a query without blocking the event loop."""
        return await asyncio.to_thread(self.encode_query, text)

    async def embed_image(self, image: Image.Image) -> list[float]:
        """Encode an image without blocking the event loop."""
        return await asyncio.to_thread(self.encode_image, image)

    @property
    def dimension(self) -> int:
        """Get text embedding dimension."""
        return self.model.get_sentence_embedding_dimension()


@lru_cache(maxsize=1)
def get_embedding_service() -> EmbeddingService:
    """Get cached embedding service instance."""
    return EmbeddingService()
