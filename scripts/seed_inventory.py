#!/usr/bin/env python3
"""Seed inventory rows and schedule them for caching.

Creates a handful of inventory rows in PostgreSQL (idempotent, keyed by
item_key) and schedules each one in Redis so the row scheduler copies it to
inv:<item_key>.

Usage:
    python -m scripts.seed_inventory

Optional env vars:
  SEED_REFRESH_SECONDS=30
"""

import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402
from sqlalchemy import select  # noqa: E402

from feedcache.models import InventoryRow  # noqa: E402
from feedcache.services.inventory import SqlInventory  # noqa: E402
from feedcache.services.keys import RowId  # noqa: E402
from feedcache.services.scheduler import DelayedRowScheduler  # noqa: E402
from feedcache.stores.postgres import close_db, get_session, init_db  # noqa: E402
from feedcache.stores.redis import close_redis, get_redis, init_redis  # noqa: E402

load_dotenv()

SEED_ROWS = [
    {"item_key": "itm:1", "name": "Mechanical keyboard", "price_cents": 8900, "quantity": 40},
    {"item_key": "itm:2", "name": "USB-C hub", "price_cents": 3500, "quantity": 120},
    {"item_key": "itm:3", "name": "27in monitor", "price_cents": 24900, "quantity": 15},
]


async def seed_rows() -> list[str]:
    keys: list[str] = []
    async with get_session() as session:
        for data in SEED_ROWS:
            result = await session.execute(
                select(InventoryRow).where(InventoryRow.item_key == data["item_key"])
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = InventoryRow(**data)
                session.add(row)
            else:
                row.name = data["name"]
                row.price_cents = data["price_cents"]
                row.quantity = data["quantity"]
            keys.append(data["item_key"])
    return keys


async def main() -> None:
    await init_db()
    await init_redis()
    try:
        keys = await seed_rows()
        delay = float(os.getenv("SEED_REFRESH_SECONDS", "30"))
        scheduler = DelayedRowScheduler(get_redis(), SqlInventory())
        for key in keys:
            await scheduler.schedule(RowId(key), delay)
        print({"ok": True, "rows": keys, "refresh_seconds": delay})
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
