"""Tests for the background worker lifecycle."""

import asyncio
import logging
from typing import Any

import pytest

from feedcache.services.keys import RowId
from feedcache.services.workers import BackgroundWorkers
from feedcache.settings import Settings

WORKER_NAMES = {"session-sweeper", "popularity-decay", "row-scheduler"}


class StaticInventory:
    def __init__(self, rows: dict[str, dict[str, Any]]) -> None:
        self.rows = rows

    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None:
        return self.rows.get(row_id)


class BrokenInventory:
    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None:
        raise ValueError(f"cannot decode row {row_id}")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SESSION_SWEEP_IDLE_SECONDS=0.01,
        ROW_SCHEDULER_IDLE_SECONDS=0.01,
        POPULARITY_DECAY_INTERVAL_SECONDS=60,
        LOOP_ERROR_BACKOFF_SECONDS=0.01,
    )


async def _wait_until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if await predicate():
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_start_runs_all_workers(conn, settings):
    workers = BackgroundWorkers(conn, StaticInventory({"itm:1": {"quantity": 3}}), settings)
    await workers.scheduler.schedule(RowId("itm:1"), 3600)
    await conn.zadd("viewed:", {"itm:1": -4})

    workers.start()
    try:
        assert {task.get_name() for task in workers._tasks} == WORKER_NAMES

        async def row_cached() -> bool:
            return bool(await conn.exists("inv:itm:1"))

        async def decayed() -> bool:
            return await conn.zscore("viewed:", "itm:1") == -2

        await _wait_until(row_cached)
        assert await workers.scheduler.cached_row(RowId("itm:1")) == {"quantity": 3}
        # Decay runs once on start.
        await _wait_until(decayed)
        assert await conn.zscore("viewed:", "itm:1") == -2
        assert not any(task.done() for task in workers._tasks)
    finally:
        await workers.stop()


@pytest.mark.asyncio
async def test_start_twice_keeps_one_set_of_tasks(conn, settings):
    workers = BackgroundWorkers(conn, StaticInventory({}), settings)

    workers.start()
    first = list(workers._tasks)
    workers.start()
    try:
        assert workers._tasks == first
        assert len(workers._tasks) == 3
    finally:
        await workers.stop()


@pytest.mark.asyncio
async def test_stop_finishes_tasks(conn, settings):
    workers = BackgroundWorkers(conn, StaticInventory({}), settings)
    workers.start()
    tasks = list(workers._tasks)

    await asyncio.wait_for(workers.stop(), timeout=1)

    assert all(task.done() and not task.cancelled() for task in tasks)
    assert all(task.exception() is None for task in tasks)
    assert workers._tasks == []


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(conn, settings):
    workers = BackgroundWorkers(conn, StaticInventory({}), settings)
    await workers.stop()
    assert workers.stop_event.is_set()


@pytest.mark.asyncio
async def test_wait_returns_once_stopped(conn, settings):
    workers = BackgroundWorkers(conn, StaticInventory({}), settings)
    workers.start()

    waiter = asyncio.create_task(workers.wait())
    await asyncio.sleep(0.02)
    assert not waiter.done()

    workers.stop_event.set()
    await asyncio.wait_for(waiter, timeout=1)
    assert all(task.done() for task in workers._tasks)
    await workers.stop()


@pytest.mark.asyncio
async def test_crashed_worker_is_logged_immediately(conn, settings, caplog):
    workers = BackgroundWorkers(conn, BrokenInventory(), settings)
    await workers.scheduler.schedule(RowId("itm:1"), 60)

    with caplog.at_level(logging.ERROR, logger="uvicorn.error"):
        workers.start()
        scheduler_task = next(t for t in workers._tasks if t.get_name() == "row-scheduler")

        async def crashed() -> bool:
            return scheduler_task.done()

        await _wait_until(crashed)
        # Done callbacks run on the next loop iteration.
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert isinstance(scheduler_task.exception(), ValueError)
        assert any(
            "row-scheduler crashed" in record.getMessage() for record in caplog.records
        )
        # The other workers keep running.
        others = [t for t in workers._tasks if t is not scheduler_task]
        assert not any(task.done() for task in others)

    await workers.stop()
