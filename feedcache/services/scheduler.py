"""Delayed row re-cache scheduler.

Two zsets act as a persistent priority queue:
- delay:     row -> refresh interval in seconds (<= 0 means stop)
- schedule:  row -> next due timestamp

The driver peeks the earliest `schedule:` entry (no pop). When it is due:
- delay <= 0 (or missing): remove delay:, schedule: and inv:<row>
- otherwise: copy the inventory row into inv:<row> as JSON and push the due
  time to now + delay

(Re)scheduling a row always makes it due immediately, so a new interval takes
effect on the next driver pass and an unscheduled row is cleaned up promptly.
Because all state lives in Redis, a restarted driver picks up where the last
one stopped.
"""

import asyncio
import json
import logging
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from feedcache.services.inventory import Inventory, InventoryUnavailableError
from feedcache.services.keys import DELAY, SCHEDULE, Clock, RowId, default_clock, inventory_key
from feedcache.services.loop import run_until_stopped
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")

# Any delay at or below zero stops scheduling; -1 is what unschedule() writes.
STOP_DELAY = -1

# Store or inventory outages: log, back off, try the same row again.
RETRYABLE_ERRORS = (RedisError, SQLAlchemyError, InventoryUnavailableError, OSError)


class DelayedRowScheduler:
    def __init__(
        self,
        conn: OrderedStore,
        inventory: Inventory,
        clock: Clock = default_clock,
    ) -> None:
        self.conn = conn
        self.inventory = inventory
        self.clock = clock

    async def schedule(self, row_id: RowId, delay: float) -> None:
        """Refresh `row_id` every `delay` seconds, starting now."""
        await self.conn.zadd(DELAY, {row_id: delay})
        await self.conn.zadd(SCHEDULE, {row_id: self.clock()})

    async def unschedule(self, row_id: RowId) -> None:
        """Stop refreshing `row_id`; the next driver pass drops its cache."""
        await self.schedule(row_id, STOP_DELAY)

    async def cached_row(self, row_id: RowId) -> dict[str, Any] | None:
        payload = await self.conn.get(inventory_key(row_id))
        if not payload:
            return None
        return json.loads(payload)

    async def process_next(self) -> bool:
        """Handle the earliest scheduled row if it is due.

        Returns:
            True if a row was refreshed or removed, False if nothing was due.
        """
        head = await self.conn.zrange(SCHEDULE, 0, 0, withscores=True)
        now = self.clock()
        if not head or head[0][1] > now:
            return False

        row_id = RowId(head[0][0])
        delay = await self.conn.zscore(DELAY, row_id)
        if delay is None or delay <= 0:
            await self._remove(row_id)
            return True

        row = await self.inventory.fetch_row(row_id)
        if row is None:
            logger.warning(f"Inventory row {row_id} not found, removing it from the schedule")
            await self._remove(row_id)
            return True

        await self.conn.zadd(SCHEDULE, {row_id: now + delay})
        await self.conn.set(inventory_key(row_id), json.dumps(row, default=str))
        logger.debug(f"Row {row_id} cached, next refresh in {delay}s")
        return True

    async def run(
        self,
        stop: asyncio.Event,
        *,
        idle: float = 0.05,
        error_backoff: float = 5.0,
    ) -> int:
        return await run_until_stopped(
            self.process_next,
            stop,
            idle=idle,
            name="Row scheduler",
            error_backoff=error_backoff,
            retry_on=RETRYABLE_ERRORS,
        )

    async def _remove(self, row_id: RowId) -> None:
        await self.conn.zrem(DELAY, row_id)
        await self.conn.zrem(SCHEDULE, row_id)
        await self.conn.delete(inventory_key(row_id))
        logger.info(f"Row {row_id} unscheduled")
