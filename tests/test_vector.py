"""Tests for the Qdrant-backed product search."""

from types import SimpleNamespace

from qdrant_client import models

from src.db.vector import VectorDB, point_id, query_keywords, search_filter


class RecordingClient:
    """Records what VectorDB sends to Qdrant and answers with canned points."""

    def __init__(self, points=None):
        self.points = points or []
        self.queries: list[dict] = []
        self.upserts: list[list[models.PointStruct]] = []

    async def query_points(self, **kwargs):
        self.queries.append(kwargs)
        return SimpleNamespace(points=self.points)

    async def upsert(self, collection_name, points):
        self.upserts.append(points)

    async def count(self, **kwargs):
        self.queries.append(kwargs)
        return SimpleNamespace(count=len(self.points))


def make_db(tenant_id=None, points=None) -> tuple[VectorDB, RecordingClient]:
    db = VectorDB(host="localhost", port=6333, collection_name="products", tenant_id=tenant_id)
    client = RecordingClient(points)
    db._client = client
    return db, client


def tenant_values(query_filter: models.Filter) -> list[str]:
    return [condition.match.value for condition in query_filter.must or []]


class TestSearchFilter:
    def test_no_tenant_no_keywords(self):
        assert search_filter() is None

    def test_tenant_only(self):
        query_filter = search_filter("shop-a")
        assert tenant_values(query_filter) == ["shop-a"]
        assert not query_filter.should

    def test_tenant_is_required_and_keywords_optional(self):
        query_filter = search_filter("shop-a", ["sneakers", "blue"])
        assert tenant_values(query_filter) == ["shop-a"]
        assert [c.match.text for c in query_filter.should] == ["sneakers", "blue"]

    def test_keywords_skip_stopwords_and_short_words(self):
        assert query_keywords("Do you have the blue sneakers?") == ["blue", "sneakers"]


class TestPointId:
    def test_stable(self):
        assert point_id("p1") == point_id("p1")

    def test_distinct_per_tenant(self):
        assert point_id("p1", "shop-a") != point_id("p1", "shop-b")
        assert point_id("p1", "shop-a") != point_id("p1")


class TestTenantScope:
    async def test_every_search_carries_tenant(self):
        db, client = make_db(tenant_id="shop-a")

        await db.hybrid_search("blue sneakers", [0.1], 0.3, 5)
        await db.vector_search([0.1], 0.5, 5)
        await db.image_search([0.2], 0.3, 5)

        assert [q["using"] for q in client.queries] == ["text", "text", "image"]
        assert all(tenant_values(q["query_filter"]) == ["shop-a"] for q in client.queries)
        assert client.queries[0]["query_filter"].should

    async def test_unscoped_searches_have_no_filter(self):
        db, client = make_db()
        await db.vector_search([0.1], 0.5, 5)
        assert client.queries[0]["query_filter"] is None

    async def test_count_is_scoped(self):
        db, client = make_db(tenant_id="shop-a")
        await db.count()
        assert tenant_values(client.queries[0]["count_filter"]) == ["shop-a"]

    async def test_upsert_stamps_tenant(self):
        db, client = make_db(tenant_id="shop-a")
        product = {"product_id": "p1", "name": "Blue Sneakers"}

        await db.upsert_products([product], [[0.1, 0.2]], [None])

        point = client.upserts[0][0]
        assert point.payload["tenant_id"] == "shop-a"
        assert point.id == point_id("p1", "shop-a")
        assert "image" not in point.vector
        assert "tenant_id" not in product

    async def test_hits_become_products(self):
        hit = SimpleNamespace(id="uuid-1", score=0.8, payload={"product_id": "p1", "name": "Blue Sneakers"})
        db, _ = make_db(tenant_id="shop-a", points=[hit])

        results = await db.vector_search([0.1], 0.5, 5)

        assert [(p.id, p.name, p.similarity) for p in results] == [("p1", "Blue Sneakers", 0.8)]
