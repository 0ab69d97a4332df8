"""
Order commit: customer lookup and order creation.
"""

import logging

from src.core.orders.models import Lead, OrderRecord, OrderStatus
from src.core.text import mask_phone
from src.db.base import BaseStore

logger = logging.getLogger(__name__)


class OrderCommitError(Exception):
    """Order could not be placed. No partial order is left behind."""


class OrderService:
    """Turns a lead's pending order into a stored order."""

    def __init__(self, store: BaseStore):
        self.store = store

    async def commit(self, lead: Lead) -> OrderRecord:
        """
        Find or create the customer, then create the order with its items.

        Raises:
            OrderCommitError: missing details or a storage failure
        """
        if lead.pending_order is None or not lead.pending_order.items:
            raise OrderCommitError("No items in pending order")
        if not lead.has_contact_info:
            raise OrderCommitError("Customer details incomplete")

        logger.info(
            f"Placing order for {lead.user_key} "
            f"(phone {mask_phone(lead.phone)}, {len(lead.pending_order.items)} items)"
        )

        try:
            customer = await self.store.find_or_create_customer(
                name=lead.name,
                phone=lead.phone,
                email=lead.email,
                address=lead.address,
            )
            order = await self.store.create_order(customer.id, lead.pending_order.items)
        except Exception as e:
            raise OrderCommitError(f"Storage failure: {e}") from e

        logger.info(f"Order {order.id} saved for customer {customer.id}, total {order.total:.2f}")
        return order

    async def update_status(self, order_id: str, status: OrderStatus | str) -> None:
        """Set order status to pending, paid or refunded."""
        status = OrderStatus(status)
        await self.store.update_order_status(order_id, status)
        logger.info(f"Order {order_id} marked {status.value}")
