"""Shared test fixtures and fakes."""

import asyncio
import copy
import itertools
from typing import Optional

import pytest

from src.core.orders.models import (
    Customer,
    Lead,
    OrderLine,
    OrderRecord,
    OrderStatus,
    Stage,
)
from src.core.rag.models import RetrievedProduct
from src.core.rag.retriever import ProductRetriever
from src.db.base import LEAD_FIELDS, BaseStore, HistoryMessage
from src.db.repositories import SqlStore
from src.db.sqlite import Database
from src.integrations.llm import BaseLLM, ChatMessage, LLMResponse


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLM(BaseLLM):
    """Returns scripted replies, or raises when `fail` is set."""

    def __init__(self, replies: Optional[list[str]] = None, fail: bool = False, delay: float = 0.0):
        self.replies = list(replies or [])
        self.default = "Here is what I found for you."
        self.fail = fail
        self.delay = delay
        self.calls: list[list[ChatMessage]] = []

    async def complete(self, messages, max_tokens=300, temperature=0.3) -> LLMResponse:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("backend down")
        content = self.replies.pop(0) if self.replies else self.default
        return LLMResponse(content=content, tokens_used=10, model="fake")

    @property
    def name(self) -> str:
        return "fake"


class InMemoryStore(BaseStore):
    """Dict-backed store with the same contract as SqlStore."""

    def __init__(self, tenant_id: str = "test"):
        self.tenant_id = tenant_id
        self.leads: dict[str, Lead] = {}
        self.messages: dict[str, list[HistoryMessage]] = {}
        self.summaries: dict[str, str] = {}
        self.customers: dict[str, Customer] = {}
        self.orders: dict[str, OrderRecord] = {}
        self.fail_appends = False
        self.fail_orders = False
        self.fail_lead_loads = False
        self.fail_lead_updates = False
        self._ids = itertools.count(1)

    async def get_or_create_lead(self, user_key: str) -> Lead:
        if self.fail_lead_loads:
            raise RuntimeError("leads table unavailable")
        if user_key not in self.leads:
            self.leads[user_key] = Lead(user_key=user_key, tenant_id=self.tenant_id)
        return copy.deepcopy(self.leads[user_key])

    async def update_lead(self, user_key: str, **fields) -> Lead:
        unknown = set(fields) - LEAD_FIELDS
        if unknown:
            raise ValueError(f"Unknown lead fields: {sorted(unknown)}")
        if self.fail_lead_updates:
            raise RuntimeError("db down")
        await self.get_or_create_lead(user_key)
        lead = self.leads[user_key]
        for field, value in fields.items():
            if field == "stage":
                value = Stage(value)
            setattr(lead, field, copy.deepcopy(value))
        return copy.deepcopy(lead)

    async def append_message(self, user_key, role, content, message_id=None) -> None:
        if self.fail_appends:
            raise RuntimeError("history unavailable")
        self.messages.setdefault(user_key, []).append(HistoryMessage(role=role, content=content))

    async def get_recent_messages(self, user_key, limit) -> list[HistoryMessage]:
        return list(self.messages.get(user_key, [])[-limit:])

    async def get_summary(self, user_key) -> Optional[str]:
        return self.summaries.get(user_key)

    async def update_summary(self, user_key, summary, message_count) -> None:
        self.summaries[user_key] = summary

    async def find_or_create_customer(self, name, phone, email, address) -> Customer:
        customer = self.customers.get(phone)
        if customer is None:
            customer = Customer(id=f"cust-{next(self._ids)}", name=name, phone=phone)
            self.customers[phone] = customer
        customer.name = name
        customer.email = email or customer.email
        customer.address = address or customer.address
        return customer

    async def create_order(self, customer_id, lines, status=OrderStatus.PENDING) -> OrderRecord:
        if self.fail_orders:
            raise RuntimeError("orders table locked")
        order = OrderRecord(
            id=f"order-{next(self._ids)}",
            customer_id=customer_id,
            status=OrderStatus(status),
            total=sum(line.total_price for line in lines),
            items=list(lines),
        )
        self.orders[order.id] = order
        return order

    async def update_order_status(self, order_id, status) -> None:
        if order_id not in self.orders:
            raise LookupError(order_id)
        self.orders[order_id].status = OrderStatus(status)


class FakeEmbedder:
    """Deterministic vectors; raises for the configured modality."""

    def __init__(self, fail_text: bool = False, fail_image: bool = False):
        self.fail_text = fail_text
        self.fail_image = fail_image
        self.texts: list[str] = []

    async def embed_text(self, text: str) -> list[float]:
        if self.fail_text:
            raise RuntimeError("text model unavailable")
        self.texts.append(text)
        return [0.1, 0.2, 0.3]

    async def embed_image(self, image) -> list[float]:
        if self.fail_image:
            raise RuntimeError("image model unavailable")
        return [0.4, 0.5]


class FakeImageFetcher:
    async def fetch(self, url: str):
        return f"image:{url}"


class FakeSearch:
    """Canned results per search strategy. An exception value is raised instead."""

    def __init__(self, hybrid=None, vector=None, image=None):
        self.results = {"hybrid": hybrid or [], "vector": vector or [], "image": image or []}
        self.calls: list[str] = []

    def _answer(self, name: str) -> list[RetrievedProduct]:
        self.calls.append(name)
        result = self.results[name]
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def hybrid_search(self, query_text, vector, threshold, count):
        return self._answer("hybrid")

    async def vector_search(self, vector, threshold, count):
        return self._answer("vector")

    async def image_search(self, vector, threshold, count):
        return self._answer("image")


def product(
    id: str,
    name: str,
    similarity: float,
    category: Optional[str] = None,
    price: Optional[float] = 10.0,
    image_url: Optional[str] = None,
) -> RetrievedProduct:
    """Helper to create a RetrievedProduct."""
    return RetrievedProduct(
        id=id,
        name=name,
        similarity=similarity,
        category=category,
        price=price,
        image_url=image_url,
    )


def line(product_id="p1", name="Blue Sneakers", quantity=1, unit_price=49.0) -> OrderLine:
    return OrderLine(product_id=product_id, product_name=name, quantity=quantity, unit_price=unit_price)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def sneaker_search():
    return FakeSearch(
        hybrid=[
            product("p1", "Blue Running Sneakers", 0.82, category="shoes", image_url="https://cdn.example/p1.jpg"),
            product("p2", "Denim Jacket", 0.41, category="jackets"),
        ],
        vector=[
            product("p1", "Blue Running Sneakers", 0.78, category="shoes", image_url="https://cdn.example/p1.jpg"),
            product("p3", "White Canvas Sneakers", 0.66, category="shoes"),
        ],
    )


@pytest.fixture
def retriever_factory():
    def build(search: FakeSearch, embedder: Optional[FakeEmbedder] = None) -> ProductRetriever:
        return ProductRetriever(
            embedder=embedder or FakeEmbedder(),
            search=search,
            image_fetcher=FakeImageFetcher(),
        )
    return build


@pytest.fixture
async def sql_store():
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.init()
    yield SqlStore(database, tenant_id="test")
    await database.close()
