"""Inventory lookup used by the delayed row scheduler.

The scheduler only needs `fetch_row(row_id) -> snapshot | None`; the
PostgreSQL-backed implementation reads `inventory_rows` by item key.
"""

from typing import Any, Protocol

from sqlalchemy import select

from feedcache.models import InventoryRow
from feedcache.services.keys import RowId
from feedcache.stores.postgres import get_session


class InventoryUnavailableError(RuntimeError):
    """The inventory database could not be reached (or was never initialized)."""


class Inventory(Protocol):
    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None: ...


class SqlInventory:
    """Inventory backed by the `inventory_rows` table."""

    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None:
        try:
            async with get_session() as session:
                result = await session.execute(
                    select(InventoryRow).where(InventoryRow.item_key == row_id)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    return None
                return row.to_snapshot()
        except (OSError, RuntimeError) as e:
            # asyncpg surfaces refused/dropped connections as OSError;
            # get_session() raises RuntimeError before init_db().
            raise InventoryUnavailableError(f"Inventory lookup for {row_id} failed: {e}") from e
