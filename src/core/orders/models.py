"""
Order and lead models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Next input the conversation expects from the user."""
    ASK_ITEM = "ask_item"                      # Browsing
    ASK_NAME = "ask_name"
    ASK_PHONE = "ask_phone"
    ASK_EMAIL = "ask_email"
    ASK_ADDRESS = "ask_address"
    SHOW_ORDER_SUMMARY = "show_order_summary"  # Waiting for YES / EDIT
    CONFIRM_ORDER = "confirm_order"            # Waiting for YES / NO
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    """Order status enum."""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


@dataclass
class OrderLine:
    """Single item in an order."""
    product_id: str
    product_name: str
    quantity: int
    unit_price: float

    @property
    def total_price(self) -> float:
        """Calculate total price for this line."""
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrderLine":
        return cls(
            product_id=str(data["product_id"]),
            product_name=data.get("product_name", ""),
            quantity=int(data.get("quantity", 1)),
            unit_price=float(data.get("unit_price") or 0),
        )


@dataclass
class PendingOrder:
    """Order assembled in conversation, not yet committed."""
    items: list[OrderLine] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(item.total_price for item in self.items)

    def to_dict(self) -> dict:
        return {"items": [item.to_dict() for item in self.items], "total": self.total}

    @classmethod
    def from_dict(cls, data: dict | None) -> Optional["PendingOrder"]:
        if not data:
            return None
        return cls(items=[OrderLine.from_dict(item) for item in data.get("items", [])])


@dataclass
class ShownProduct:
    """Product recently shown to the user, kept for "I'll take it" replies."""
    product_id: str
    name: str
    price: float
    similarity: float

    @classmethod
    def from_product(cls, product) -> "ShownProduct":
        return cls(
            product_id=product.id,
            name=product.name,
            price=product.price or 0.0,
            similarity=product.similarity,
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "similarity": self.similarity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShownProduct":
        return cls(
            product_id=str(data["product_id"]),
            name=data.get("name", ""),
            price=float(data.get("price") or 0),
            similarity=float(data.get("similarity") or 0),
        )


@dataclass
class Lead:
    """Durable per-user conversation record."""
    user_key: str
    tenant_id: str
    stage: Stage = Stage.ASK_ITEM
    item: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    pending_order: Optional[PendingOrder] = None
    last_order_id: Optional[str] = None
    last_shown_products: list[ShownProduct] = field(default_factory=list)

    @property
    def has_contact_info(self) -> bool:
        """Enough details on file to place an order."""
        return bool(self.name and self.phone and self.address)


@dataclass
class Customer:
    """Customer found or created at order time."""
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


@dataclass
class OrderRecord:
    """Committed order."""
    id: str
    customer_id: str
    status: OrderStatus
    total: float
    items: list[OrderLine] = field(default_factory=list)
