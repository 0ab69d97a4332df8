#!/usr/bin/env python3
"""
Script to load a product catalog into the vector store.

Usage:
    python scripts/load_catalog.py path/to/catalog.xlsx
    python scripts/load_catalog.py path/to/catalog.csv --no-images
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.loaders.catalog_loader import load_catalog
from src.db.vector import vector_db


async def main(file_path: str, with_images: bool = True) -> None:
    """Load catalog from file."""
    file_path = Path(file_path)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    print(f"Loading catalog from: {file_path}")
    print("-" * 50)

    try:
        stats = await load_catalog(file_path, with_images=with_images)

        print("✅ Successfully loaded catalog!")
        print(f"   File: {stats['file']}")
        print(f"   Total products: {stats['total_products']}")
        print(f"   With image vectors: {stats['with_images']}")

    except Exception as e:
        print(f"❌ Error loading catalog: {e}")
        raise
    finally:
        await vector_db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Load product catalog into Qdrant")
    parser.add_argument("file", help="Path to catalog file (XLSX or CSV)")
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Skip downloading photos and building image vectors",
    )

    args = parser.parse_args()
    asyncio.run(main(args.file, with_images=not args.no_images))
