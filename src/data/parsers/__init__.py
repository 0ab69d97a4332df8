"""
Catalog parsers for different file formats.
"""

from src.data.parsers.catalog_parser import CatalogProduct, parse_catalog, parse_catalog_file

__all__ = [
    "CatalogProduct",
    "parse_catalog",
    "parse_catalog_file",
]
