"""InventoryRow model.

Source-of-truth rows that the delayed row scheduler periodically copies into
Redis (`inv:<row_id>`) so hot pages can be rendered without touching the DB.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from feedcache.stores.postgres import Base


class InventoryRow(Base):
    """A single inventory item."""

    __tablename__ = "inventory_rows"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Stable item key shared with sessions/carts (e.g. "itm:42")
    item_key: Mapped[str] = mapped_column(String(200), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    quantity: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_snapshot(self) -> dict[str, object]:
        """Plain JSON-serializable view of the row."""
        return {
            "id": self.id,
            "item_key": self.item_key,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "currency": self.currency,
            "quantity": self.quantity,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<InventoryRow {self.item_key}>"
