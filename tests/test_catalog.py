"""Tests for catalog parsing and loading."""

import pandas as pd
import pytest

from src.data.images import ImageFetchError
from src.data.loaders.catalog_loader import CatalogLoader
from src.data.parsers import CatalogProduct, parse_catalog, parse_catalog_file


class FakeEmbeddingService:
    def encode_documents(self, texts):
        return [[float(len(t))] for t in texts]

    async def embed_image(self, image):
        return [1.0, 0.0]


class FakeVectorStore:
    def __init__(self):
        self.batches = []
        self.initialized = False

    async def init_collection(self):
        self.initialized = True

    async def upsert_products(self, products, text_vectors, image_vectors):
        self.batches.append((products, text_vectors, image_vectors))


class FlakyFetcher:
    async def fetch(self, url):
        if "broken" in url:
            raise ImageFetchError("HTTP 404")
        return object()


CATALOG = pd.DataFrame(
    {
        "ID": ["p1", "p2", "p2", "p3", None],
        "Name": ["Blue Sneakers", "Denim Jacket", "Duplicate", None, "No id"],
        "Category": ["shoes", "jackets", "jackets", "hats", "misc"],
        "Price": ["$49,90", "n/a", "1", "2", "3"],
        "Image_URL": ["https://cdn/p1.jpg", None, None, None, None],
    }
)


class TestParse:
    def test_rows_normalized(self):
        products = parse_catalog(CATALOG)

        assert [p.product_id for p in products] == ["p1", "p2"]
        assert products[0].price == 49.9
        assert products[0].image_url == "https://cdn/p1.jpg"
        assert products[1].price is None
        assert products[1].description == ""

    def test_missing_columns(self):
        with pytest.raises(ValueError):
            parse_catalog(pd.DataFrame({"title": ["x"]}))

    def test_search_text_and_payload(self):
        product = CatalogProduct("p1", "Blue Sneakers", "Light runners", category="shoes")
        assert product.search_text == "Blue Sneakers shoes Light runners"
        assert product.to_payload()["search_text"] == product.search_text

    def test_csv_file(self, tmp_path):
        path = tmp_path / "catalog.csv"
        path.write_text("id,name,price\np1,Blue Sneakers,49\n", encoding="utf-8")
        assert parse_catalog_file(path)[0].price == 49.0

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError):
            parse_catalog_file(tmp_path / "catalog.pdf")


class TestLoader:
    async def test_load_products(self):
        store = FakeVectorStore()
        loader = CatalogLoader(
            embedding_service=FakeEmbeddingService(),
            store=store,
            image_fetcher=FlakyFetcher(),
            batch_size=2,
        )
        products = [
            CatalogProduct("p1", "Sneakers", image_url="https://cdn/p1.jpg"),
            CatalogProduct("p2", "Jacket", image_url="https://cdn/broken.jpg"),
            CatalogProduct("p3", "Cap"),
        ]

        stats = await loader.load_products(products)

        assert stats == {"total_products": 3, "with_images": 1}
        assert len(store.batches) == 2
        payloads, text_vectors, image_vectors = store.batches[0]
        assert [p["product_id"] for p in payloads] == ["p1", "p2"]
        assert image_vectors == [[1.0, 0.0], None]

    async def test_load_file(self, tmp_path):
        path = tmp_path / "catalog.csv"
        path.write_text("id,name\np1,Blue Sneakers\np2,Cap\n", encoding="utf-8")
        store = FakeVectorStore()
        loader = CatalogLoader(
            embedding_service=FakeEmbeddingService(), store=store, image_fetcher=FlakyFetcher(),
        )

        stats = await loader.load_file(path, with_images=False)

        assert store.initialized
        assert stats["file"] == "catalog.csv"
        assert stats["total_products"] == 2
