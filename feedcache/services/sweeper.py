"""Session sweeper: keeps `recent:` bounded to `limit` sessions.

When the index grows past the limit, the oldest sessions are evicted in
batches of at most `batch` (default 100). For each evicted token the
dependent state is removed first and the `recent:` entry last:

    cart:<token> -> viewed:<token> -> login:[token] -> recent:[token]

If a step fails halfway, the token is still in `recent:` and the next pass
finishes the job. The worst leftover is an orphaned cart or view list, which
nothing can reach anymore.
"""

import asyncio
import logging

from feedcache.services.keys import LOGIN, RECENT, cart_key, viewed_key
from feedcache.services.loop import run_until_stopped
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")

DEFAULT_LIMIT = 10_000_000
DEFAULT_BATCH = 100


class SessionSweeper:
    def __init__(
        self,
        conn: OrderedStore,
        *,
        limit: int = DEFAULT_LIMIT,
        batch: int = DEFAULT_BATCH,
    ) -> None:
        self.conn = conn
        self.limit = limit
        self.batch = batch

    async def sweep_once(self) -> int:
        """Evict one batch of the oldest sessions if over the limit.

        Returns:
            Number of sessions evicted (0 when within the limit).
        """
        size = await self.conn.zcard(RECENT)
        if size <= self.limit:
            return 0

        end_index = min(size - self.limit, self.batch)
        tokens = await self.conn.zrange(RECENT, 0, end_index - 1)

        for token in tokens:
            await self.conn.delete(cart_key(token))
            await self.conn.delete(viewed_key(token))
            await self.conn.hdel(LOGIN, token)
            await self.conn.zrem(RECENT, token)

        logger.info(f"Session sweep evicted {len(tokens)} sessions (size was {size})")
        return len(tokens)

    async def run(
        self,
        stop: asyncio.Event,
        *,
        idle: float = 1.0,
        error_backoff: float = 5.0,
    ) -> int:
        async def step() -> bool:
            return await self.sweep_once() > 0

        return await run_until_stopped(
            step, stop, idle=idle, name="Session sweeper", error_backoff=error_backoff
        )
