"""
Product records produced by retrieval.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class RetrievedProduct:
    """Catalog product matched for one request. Not persisted."""

    id: str
    name: str
    similarity: float
    description: str = ""
    category: Optional[str] = None
    size: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None

    @classmethod
    def from_payload(cls, point_id: Any, score: float, payload: dict) -> "RetrievedProduct":
        """Build from a vector-store hit."""
        price = payload.get("price")
        return cls(
            id=str(payload.get("product_id") or point_id),
            name=str(payload.get("name", "")),
            similarity=max(0.0, min(1.0, float(score))),
            description=str(payload.get("description") or ""),
            category=payload.get("category"),
            size=payload.get("size"),
            price=float(price) if price is not None else None,
            image_url=payload.get("image_url"),
        )
