"""Background workers: session sweeper, popularity decay, row scheduler.

All three share one Redis client and one stop event. They run as independent
asyncio tasks and never communicate except through the store.
"""

import asyncio
import logging

from feedcache.services.inventory import Inventory
from feedcache.services.popularity import ViewPopularityTracker
from feedcache.services.scheduler import DelayedRowScheduler
from feedcache.services.sweeper import SessionSweeper
from feedcache.settings import Settings
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")


class BackgroundWorkers:
    def __init__(self, conn: OrderedStore, inventory: Inventory, settings: Settings) -> None:
        self.settings = settings
        self.sweeper = SessionSweeper(
            conn,
            limit=settings.session_limit,
            batch=settings.session_sweep_batch,
        )
        self.popularity = ViewPopularityTracker(
            conn,
            keep=settings.popularity_keep,
            decay_factor=settings.popularity_decay_factor,
            cache_rank_limit=settings.cache_rank_limit,
        )
        self.scheduler = DelayedRowScheduler(conn, inventory)
        self.stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task[int]] = []

    def start(self) -> None:
        """Spawn the worker tasks on the running event loop."""
        if self._tasks:
            return
        s = self.settings
        backoff = s.loop_error_backoff_seconds
        self._tasks = [
            asyncio.create_task(
                self.sweeper.run(
                    self.stop_event,
                    idle=s.session_sweep_idle_seconds,
                    error_backoff=backoff,
                ),
                name="session-sweeper",
            ),
            asyncio.create_task(
                self.popularity.run(
                    self.stop_event,
                    interval=s.popularity_decay_interval_seconds,
                    error_backoff=backoff,
                ),
                name="popularity-decay",
            ),
            asyncio.create_task(
                self.scheduler.run(
                    self.stop_event,
                    idle=s.row_scheduler_idle_seconds,
                    error_backoff=backoff,
                ),
                name="row-scheduler",
            ),
        ]
        for task in self._tasks:
            task.add_done_callback(_log_crash)
        logger.info(f"Started {len(self._tasks)} background workers")

    async def stop(self) -> None:
        """Signal all workers and wait for them to finish their current step."""
        self.stop_event.set()
        if not self._tasks:
            return
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for task, result in zip(self._tasks, results):
            if isinstance(result, BaseException):
                logger.error(f"Worker {task.get_name()} exited with error: {result!r}")
        self._tasks = []

    async def wait(self) -> None:
        """Block until every worker has exited (used by the standalone runner)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


def _log_crash(task: "asyncio.Task[int]") -> None:
    """Report a worker that died on its own, without waiting for stop()."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Worker {task.get_name()} crashed: {exc!r}", exc_info=exc)
