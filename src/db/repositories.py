"""
SQLAlchemy implementation of the persistence contract.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core.orders.models import (
    Customer,
    Lead,
    OrderLine,
    OrderRecord,
    OrderStatus,
    PendingOrder,
    ShownProduct,
    Stage,
)
from src.db import models
from src.db.base import LEAD_FIELDS, BaseStore, HistoryMessage
from src.db.sqlite import Database, db as default_db

logger = logging.getLogger(__name__)


def _to_lead(row: models.Lead) -> Lead:
    return Lead(
        user_key=row.user_key,
        tenant_id=row.tenant_id,
        stage=Stage(row.stage),
        item=row.item,
        name=row.name,
        phone=row.phone,
        email=row.email,
        address=row.address,
        pending_order=PendingOrder.from_dict(row.pending_order),
        last_order_id=row.last_order_id,
        last_shown_products=[ShownProduct.from_dict(p) for p in (row.last_shown_products or [])],
    )


def _to_column(field: str, value):
    if field == "stage":
        return Stage(value).value
    if field == "pending_order":
        return value.to_dict() if value is not None else None
    if field == "last_shown_products":
        return [p.to_dict() for p in value or []]
    return value


class SqlStore(BaseStore):
    """Leads, history, customers and orders in a SQL database."""

    def __init__(self, database: Database | None = None, tenant_id: str | None = None):
        self.db = database or default_db
        self.tenant_id = tenant_id or settings.tenant_id

    async def _lead_row(self, session: AsyncSession, user_key: str) -> models.Lead:
        row = await session.scalar(
            select(models.Lead).where(
                models.Lead.tenant_id == self.tenant_id,
                models.Lead.user_key == user_key,
            )
        )
        if row is None:
            row = models.Lead(
                tenant_id=self.tenant_id,
                user_key=user_key,
                stage=Stage.ASK_ITEM.value,
                last_shown_products=[],
            )
            session.add(row)
            await session.flush()
            logger.info(f"New lead {user_key}")
        return row

    async def get_or_create_lead(self, user_key: str) -> Lead:
        async with self.db.session() as session:
            return _to_lead(await self._lead_row(session, user_key))

    async def update_lead(self, user_key: str, **fields) -> Lead:
        unknown = set(fields) - LEAD_FIELDS
        if unknown:
            raise ValueError(f"Unknown lead fields: {sorted(unknown)}")

        async with self.db.session() as session:
            row = await self._lead_row(session, user_key)
            for field, value in fields.items():
                setattr(row, field, _to_column(field, value))
            await session.flush()
            return _to_lead(row)

    async def append_message(
        self,
        user_key: str,
        role: str,
        content: str,
        message_id: str | None = None,
    ) -> None:
        async with self.db.session() as session:
            session.add(
                models.ChatMessage(
                    tenant_id=self.tenant_id,
                    user_key=user_key,
                    role=role,
                    content=content,
                    message_id=message_id,
                )
            )

    async def get_recent_messages(self, user_key: str, limit: int) -> list[HistoryMessage]:
        async with self.db.session() as session:
            rows = (
                await session.scalars(
                    select(models.ChatMessage)
                    .where(
                        models.ChatMessage.tenant_id == self.tenant_id,
                        models.ChatMessage.user_key == user_key,
                    )
                    .order_by(models.ChatMessage.id.desc())
                    .limit(limit)
                )
            ).all()

        return [
            HistoryMessage(role=r.role, content=r.content, created_at=r.created_at)
            for r in reversed(rows)
        ]

    async def get_summary(self, user_key: str) -> Optional[str]:
        async with self.db.session() as session:
            return await session.scalar(
                select(models.ConversationSummary.summary).where(
                    models.ConversationSummary.tenant_id == self.tenant_id,
                    models.ConversationSummary.user_key == user_key,
                )
            )

    async def update_summary(self, user_key: str, summary: str, message_count: int) -> None:
        async with self.db.session() as session:
            row = await session.scalar(
                select(models.ConversationSummary).where(
                    models.ConversationSummary.tenant_id == self.tenant_id,
                    models.ConversationSummary.user_key == user_key,
                )
            )
            if row is None:
                row = models.ConversationSummary(tenant_id=self.tenant_id, user_key=user_key, summary=summary)
                session.add(row)
            row.summary = summary
            row.message_count = message_count

    async def find_or_create_customer(
        self,
        name: str,
        phone: str,
        email: str | None,
        address: str | None,
    ) -> Customer:
        async with self.db.session() as session:
            row = await session.scalar(
                select(models.Customer).where(
                    models.Customer.tenant_id == self.tenant_id,
                    models.Customer.phone == phone,
                )
            )
            if row is None:
                row = models.Customer(tenant_id=self.tenant_id, name=name, phone=phone)
                session.add(row)
            # Latest details win
            row.name = name
            row.email = email or row.email
            row.address = address or row.address
            await session.flush()

            return Customer(
                id=row.id,
                name=row.name,
                phone=row.phone,
                email=row.email,
                address=row.address,
            )

    async def create_order(
        self,
        customer_id: str,
        lines: list[OrderLine],
        status: OrderStatus = OrderStatus.PENDING,
    ) -> OrderRecord:
        if not lines:
            raise ValueError("Order needs at least one item")

        total = sum(line.total_price for line in lines)

        # Order row and item rows share one transaction: a failing item
        # rolls the order back as well.
        async with self.db.session() as session:
            order = models.Order(
                tenant_id=self.tenant_id,
                customer_id=customer_id,
                status=OrderStatus(status).value,
                total=total,
            )
            session.add(order)
            await session.flush()

            for line in lines:
                session.add(
                    models.OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        product_name=line.product_name,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                    )
                )
            await session.flush()
            order_id = order.id

        return OrderRecord(
            id=order_id,
            customer_id=customer_id,
            status=OrderStatus(status),
            total=total,
            items=list(lines),
        )

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        async with self.db.session() as session:
            order = await session.get(models.Order, order_id)
            if order is None:
                raise LookupError(f"Order {order_id} not found")
            order.status = OrderStatus(status).value
