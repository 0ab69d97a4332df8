"""
Catalog parser for product sheets (XLSX or CSV).

Expected columns (case-insensitive): id, name, description, category,
size, price, image_url. Only id and name are required.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

REQUIRED_COLUMNS = {"id", "name"}


@dataclass
class CatalogProduct:
    """Product row from a catalog sheet."""

    product_id: str
    name: str
    description: str = ""
    category: Optional[str] = None
    size: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None

    @property
    def search_text(self) -> str:
        """Text indexed for keyword matching and embedded for semantic search."""
        parts = [self.name, self.category or "", self.description]
        return " ".join(p for p in parts if p).strip()

    def to_payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "size": self.size,
            "price": self.price,
            "image_url": self.image_url,
            "search_text": self.search_text,
        }


def _cell(row: pd.Series, column: str) -> Optional[str]:
    if column not in row or pd.isna(row[column]):
        return None
    value = str(row[column]).strip()
    return value or None


def _price(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    cleaned = value.replace("$", "").replace(",", ".").replace(" ", "")
    try:
        return round(float(cleaned), 2)
    except ValueError:
        return None


def parse_catalog(df: pd.DataFrame) -> list[CatalogProduct]:
    """
    Convert a catalog DataFrame to products.

    Raises:
        ValueError: If required columns are missing
    """
    df = df.rename(columns=lambda c: str(c).strip().lower())
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Catalog is missing columns: {sorted(missing)}")

    products: list[CatalogProduct] = []
    seen: set[str] = set()

    for _, row in df.iterrows():
        product_id = _cell(row, "id")
        name = _cell(row, "name")
        if not product_id or not name or product_id in seen:
            continue
        seen.add(product_id)

        products.append(
            CatalogProduct(
                product_id=product_id,
                name=name,
                description=_cell(row, "description") or "",
                category=_cell(row, "category"),
                size=_cell(row, "size"),
                price=_price(_cell(row, "price")),
                image_url=_cell(row, "image_url"),
            )
        )

    return products


def parse_catalog_file(file_path: str | Path) -> list[CatalogProduct]:
    """
    Parse catalog file based on extension.

    Raises:
        ValueError: If file format is not supported
    """
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()

    if suffix in [".xlsx", ".xls"]:
        df = pd.read_excel(file_path, dtype=str)
    elif suffix == ".csv":
        df = pd.read_csv(file_path, dtype=str)
    else:
        raise ValueError(f"Unsupported file format: {suffix}")

    return parse_catalog(df)
