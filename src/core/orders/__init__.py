"""
Orders module.
Handles lead stages, contact validation and order texts.
"""

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
from src.core.orders.validators import (
    AddressValidator,
    EmailValidator,
    ItemValidator,
    NameValidator,
    PhoneValidator,
    parse_contact_triple,
)

__all__ = [
    # Models
    "Customer",
    "Lead",
    "OrderLine",
    "OrderRecord",
    "OrderStatus",
    "PendingOrder",
    "ShownProduct",
    "Stage",
    # Validators
    "AddressValidator",
    "EmailValidator",
    "ItemValidator",
    "NameValidator",
    "PhoneValidator",
    "parse_contact_triple",
]
