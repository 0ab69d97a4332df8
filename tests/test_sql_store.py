"""Tests for the SQLAlchemy store."""

import pytest
from conftest import line
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.core.orders.models import Lead, OrderLine, OrderStatus, PendingOrder, ShownProduct, Stage
from src.core.orders.service import OrderCommitError, OrderService
from src.core.orders.validators import PhoneValidator
from src.db import models


async def count_orders(store) -> int:
    async with store.db.session() as session:
        return await session.scalar(select(func.count()).select_from(models.Order))


class TestLeads:
    async def test_get_or_create_is_idempotent(self, sql_store):
        first = await sql_store.get_or_create_lead("tg:1")
        second = await sql_store.get_or_create_lead("tg:1")

        assert first.stage is Stage.ASK_ITEM
        assert first == second

    async def test_partial_update_round_trips(self, sql_store):
        order = PendingOrder(items=[line()])
        shown = [ShownProduct("p1", "Blue Sneakers", 49.0, 0.8)]

        updated = await sql_store.update_lead(
            "tg:1", stage=Stage.ASK_NAME, pending_order=order, last_shown_products=shown,
        )
        reloaded = await sql_store.get_or_create_lead("tg:1")

        assert updated == reloaded
        assert reloaded.pending_order == order
        assert reloaded.last_shown_products == shown
        assert reloaded.name is None

    async def test_clearing_pending_order(self, sql_store):
        await sql_store.update_lead("tg:1", pending_order=PendingOrder(items=[line()]))
        lead = await sql_store.update_lead("tg:1", pending_order=None)
        assert lead.pending_order is None

    async def test_unknown_field_rejected(self, sql_store):
        with pytest.raises(ValueError):
            await sql_store.update_lead("tg:1", favourite_colour="blue")


class TestHistory:
    async def test_recent_messages_in_order(self, sql_store):
        for i in range(5):
            await sql_store.append_message("tg:1", "user", f"m{i}")
        await sql_store.append_message("tg:2", "user", "other user")

        recent = await sql_store.get_recent_messages("tg:1", 3)
        assert [m.content for m in recent] == ["m2", "m3", "m4"]

    async def test_summary_upsert(self, sql_store):
        assert await sql_store.get_summary("tg:1") is None
        await sql_store.update_summary("tg:1", "first", 20)
        await sql_store.update_summary("tg:1", "second", 30)
        assert await sql_store.get_summary("tg:1") == "second"


class TestOrders:
    async def test_customer_found_by_phone(self, sql_store):
        first = await sql_store.find_or_create_customer("Jane", "012345678", None, "123 Main St")
        second = await sql_store.find_or_create_customer("Jane Doe", "012345678", "jane@example.com", None)

        assert first.id == second.id
        assert second.name == "Jane Doe"
        assert second.email == "jane@example.com"
        assert second.address == "123 Main St"

    async def test_phone_spellings_resolve_to_one_customer(self, sql_store):
        _, local, _ = PhoneValidator.validate("012 345 678")
        _, international, _ = PhoneValidator.validate("+855 12 345 678")

        first = await sql_store.find_or_create_customer("Jane", local, None, "123 Main St")
        second = await sql_store.find_or_create_customer("Jane", international, None, None)

        assert first.id == second.id
        assert second.phone == "+85512345678"

    async def test_create_order(self, sql_store):
        customer = await sql_store.find_or_create_customer("Jane", "012345678", None, "123 Main St")
        order = await sql_store.create_order(customer.id, [line(quantity=2, unit_price=10.0), line("p2", "Cap", 1, 5.0)])

        assert order.status is OrderStatus.PENDING
        assert order.total == 25.0
        assert await count_orders(sql_store) == 1

    async def test_item_failure_rolls_back_order(self, sql_store):
        customer = await sql_store.find_or_create_customer("Jane", "012345678", None, "123 Main St")
        broken = OrderLine(product_id=None, product_name="Ghost", quantity=1, unit_price=1.0)

        with pytest.raises(IntegrityError):
            await sql_store.create_order(customer.id, [line(), broken])

        assert await count_orders(sql_store) == 0

    async def test_empty_order_rejected(self, sql_store):
        with pytest.raises(ValueError):
            await sql_store.create_order("c1", [])

    async def test_update_status(self, sql_store):
        customer = await sql_store.find_or_create_customer("Jane", "012345678", None, "123 Main St")
        order = await sql_store.create_order(customer.id, [line()])

        await sql_store.update_order_status(order.id, OrderStatus.PAID)

        async with sql_store.db.session() as session:
            row = await session.get(models.Order, order.id)
            assert row.status == "paid"

    async def test_update_status_unknown_order(self, sql_store):
        with pytest.raises(LookupError):
            await sql_store.update_order_status("missing", OrderStatus.PAID)


class TestOrderService:
    def lead(self, **overrides) -> Lead:
        fields = dict(
            user_key="tg:1",
            tenant_id="test",
            name="Jane",
            phone="012345678",
            address="123 Main St",
            pending_order=PendingOrder(items=[line()]),
        )
        fields.update(overrides)
        return Lead(**fields)

    async def test_commit(self, sql_store):
        order = await OrderService(sql_store).commit(self.lead())
        assert order.total == 49.0
        assert await count_orders(sql_store) == 1

    async def test_commit_needs_items(self, sql_store):
        with pytest.raises(OrderCommitError):
            await OrderService(sql_store).commit(self.lead(pending_order=None))

    async def test_commit_needs_contact(self, sql_store):
        with pytest.raises(OrderCommitError):
            await OrderService(sql_store).commit(self.lead(phone=None))

    async def test_storage_failure_wrapped_and_rolled_back(self, sql_store):
        broken = PendingOrder(items=[OrderLine(None, "Ghost", 1, 1.0)])
        with pytest.raises(OrderCommitError):
            await OrderService(sql_store).commit(self.lead(pending_order=broken))
        assert await count_orders(sql_store) == 0

    async def test_update_status_accepts_strings(self, sql_store):
        service = OrderService(sql_store)
        order = await service.commit(self.lead())
        await service.update_status(order.id, "refunded")

        async with sql_store.db.session() as session:
            row = await session.get(models.Order, order.id)
            assert row.status == "refunded"
