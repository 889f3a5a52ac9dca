"""Item popularity tracking and page-cache admission.

`viewed:` is a zset of item -> score where each view subtracts 1, so the most
viewed items have the lowest scores and rank first in ZRANK order.

A periodic rescale keeps the structure bounded and makes old views fade:
1. Drop everything ranked at or past `keep` (default 20,000)
2. Multiply the remaining scores by `decay_factor` (default 0.5)
"""

import asyncio
import logging

from feedcache.services.keys import POPULARITY, ItemRef
from feedcache.services.loop import run_until_stopped
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")

DEFAULT_KEEP = 20_000
DEFAULT_DECAY_FACTOR = 0.5
DEFAULT_CACHE_RANK_LIMIT = 10_000


class ViewPopularityTracker:
    def __init__(
        self,
        conn: OrderedStore,
        *,
        keep: int = DEFAULT_KEEP,
        decay_factor: float = DEFAULT_DECAY_FACTOR,
        cache_rank_limit: int = DEFAULT_CACHE_RANK_LIMIT,
    ) -> None:
        self.conn = conn
        self.keep = keep
        self.decay_factor = decay_factor
        self.cache_rank_limit = cache_rank_limit

    async def record_view(self, item: ItemRef) -> None:
        """Count one view of `item` (lower score = more popular)."""
        await self.conn.zincrby(POPULARITY, -1, item)

    async def rank(self, item: ItemRef) -> int | None:
        """0-based popularity rank, or None if the item was never viewed."""
        return await self.conn.zrank(POPULARITY, item)

    async def is_cache_eligible(self, item: ItemRef) -> bool:
        """True iff the item is ranked within the top `cache_rank_limit`."""
        rank = await self.rank(item)
        return rank is not None and rank < self.cache_rank_limit

    async def rescale_once(self) -> None:
        """Truncate to the `keep` most popular items and decay their scores."""
        removed = await self.conn.zremrangebyrank(POPULARITY, self.keep, -1)
        await self.conn.zinterstore(POPULARITY, {POPULARITY: self.decay_factor})
        if removed:
            logger.info(f"Popularity rescaled: dropped {removed} items beyond rank {self.keep}")

    async def run(
        self,
        stop: asyncio.Event,
        *,
        interval: float = 300.0,
        error_backoff: float = 5.0,
    ) -> int:
        """Rescale every `interval` seconds until `stop` is set."""

        async def step() -> bool:
            await self.rescale_once()
            return False

        return await run_until_stopped(
            step, stop, idle=interval, name="Popularity decay", error_backoff=error_backoff
        )
