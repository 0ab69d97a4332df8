#!/usr/bin/env python3
"""
Script to create SQL tables and the Qdrant product collection.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --recreate-collection
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import settings
from src.db.sqlite import db
from src.db.vector import vector_db


async def main(recreate: bool = False) -> None:
    """Initialize conversation store and vector collection."""
    print(f"Tenant: {settings.tenant_id}")
    print("-" * 50)

    print(f"Creating tables at {settings.db_url} ...")
    await db.init()
    print("✅ Conversation store ready")

    print(f"Creating collection '{vector_db.collection_name}' ...")
    try:
        await vector_db.init_collection(recreate=recreate)
        print(f"✅ Collection ready ({await vector_db.count()} products)")
    finally:
        await vector_db.close()
        await db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize databases")
    parser.add_argument(
        "--recreate-collection",
        action="store_true",
        help="Drop and recreate the product collection",
    )
    args = parser.parse_args()
    asyncio.run(main(args.recreate_collection))
