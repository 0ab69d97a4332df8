"""
Persistence contract used by the conversation core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.core.orders.models import Customer, Lead, OrderLine, OrderRecord, OrderStatus


@dataclass
class HistoryMessage:
    """Stored chat message."""

    role: str
    content: str
    created_at: Optional[datetime] = None


class BaseStore(ABC):
    """Leads, chat history, summaries, customers and orders."""

    @abstractmethod
    async def get_or_create_lead(self, user_key: str) -> Lead:
        pass

    @abstractmethod
    async def update_lead(self, user_key: str, **fields) -> Lead:
        """
        Partially update a lead.

        Accepted fields: stage, item, name, phone, email, address,
        pending_order, last_order_id, last_shown_products.

        Returns:
            The lead after the update
        """
        pass

    @abstractmethod
    async def append_message(
        self,
        user_key: str,
        role: str,
        content: str,
        message_id: str | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def get_recent_messages(self, user_key: str, limit: int) -> list[HistoryMessage]:
        """Last `limit` messages in chronological order."""
        pass

    @abstractmethod
    async def get_summary(self, user_key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def update_summary(self, user_key: str, summary: str, message_count: int) -> None:
        pass

    @abstractmethod
    async def find_or_create_customer(
        self,
        name: str,
        phone: str,
        email: str | None,
        address: str | None,
    ) -> Customer:
        """Look a customer up by phone, creating one when absent."""
        pass

    @abstractmethod
    async def create_order(
        self,
        customer_id: str,
        lines: list[OrderLine],
        status: OrderStatus = OrderStatus.PENDING,
    ) -> OrderRecord:
        """Create an order and its items atomically."""
        pass

    @abstractmethod
    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        pass


LEAD_FIELDS = frozenset(
    {
        "stage",
        "item",
        "name",
        "phone",
        "email",
        "address",
        "pending_order",
        "last_order_id",
        "last_shown_products",
    }
)
