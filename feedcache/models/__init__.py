"""SQLAlchemy ORM models.

Models represent database tables:
- inventory_rows: items whose snapshots the row scheduler caches in Redis
"""

from feedcache.models.inventory import InventoryRow

__all__ = ["InventoryRow"]
