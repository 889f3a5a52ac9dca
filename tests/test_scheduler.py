"""Tests for the delayed row re-cache scheduler."""

import asyncio
import json
from typing import Any

import pytest

from feedcache.services.inventory import InventoryUnavailableError, SqlInventory
from feedcache.services.keys import RowId
from feedcache.services.scheduler import DelayedRowScheduler


class FakeInventory:
    def __init__(self, rows: dict[str, dict[str, Any]]) -> None:
        self.rows = rows
        self.fetches: list[str] = []

    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None:
        self.fetches.append(row_id)
        return self.rows.get(row_id)


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory({"itm:1": {"name": "Keyboard", "quantity": 3}})


@pytest.fixture
def scheduler(conn, inventory, clock) -> DelayedRowScheduler:
    return DelayedRowScheduler(conn, inventory, clock=clock)


@pytest.mark.asyncio
async def test_nothing_scheduled(scheduler: DelayedRowScheduler):
    assert await scheduler.process_next() is False


@pytest.mark.asyncio
async def test_schedule_is_due_immediately(scheduler: DelayedRowScheduler, conn, clock):
    await scheduler.schedule(RowId("itm:1"), 5)

    assert await conn.zscore("delay:", "itm:1") == 5
    assert await conn.zscore("schedule:", "itm:1") == clock.now


@pytest.mark.asyncio
async def test_zero_delay_removes_row(scheduler: DelayedRowScheduler, conn, inventory):
    await conn.set("inv:itm:1", "{}")
    await scheduler.schedule(RowId("itm:1"), 0)

    assert await scheduler.process_next() is True

    assert await conn.zscore("delay:", "itm:1") is None
    assert await conn.zscore("schedule:", "itm:1") is None
    assert not await conn.exists("inv:itm:1")
    assert inventory.fetches == []


@pytest.mark.asyncio
async def test_positive_delay_refreshes_and_reschedules(scheduler: DelayedRowScheduler, conn, clock, inventory):
    await scheduler.schedule(RowId("itm:1"), 5)

    assert await scheduler.process_next() is True
    assert await conn.zscore("schedule:", "itm:1") == clock.now + 5
    assert json.loads(await conn.get("inv:itm:1")) == {"name": "Keyboard", "quantity": 3}

    # Not due yet: a peek, not a pop.
    assert await scheduler.process_next() is False
    assert await conn.zcard("schedule:") == 1

    inventory.rows["itm:1"]["quantity"] = 1
    clock.advance(5)
    assert await scheduler.process_next() is True
    assert (await scheduler.cached_row(RowId("itm:1")))["quantity"] == 1
    assert inventory.fetches == ["itm:1", "itm:1"]


@pytest.mark.asyncio
async def test_unschedule_drops_cached_row(scheduler: DelayedRowScheduler, conn, clock):
    await scheduler.schedule(RowId("itm:1"), 60)
    await scheduler.process_next()
    assert await conn.exists("inv:itm:1")

    clock.advance(1)
    await scheduler.unschedule(RowId("itm:1"))
    assert await scheduler.process_next() is True

    assert await scheduler.cached_row(RowId("itm:1")) is None
    assert await conn.zcard("delay:") == 0
    assert await conn.zcard("schedule:") == 0


@pytest.mark.asyncio
async def test_missing_inventory_row_is_unscheduled(scheduler: DelayedRowScheduler, conn):
    await scheduler.schedule(RowId("itm:gone"), 5)

    assert await scheduler.process_next() is True
    assert await conn.zscore("schedule:", "itm:gone") is None
    assert await conn.zscore("delay:", "itm:gone") is None


@pytest.mark.asyncio
async def test_earliest_due_row_goes_first(conn, clock):
    inventory = FakeInventory({"itm:1": {"n": 1}, "itm:2": {"n": 2}})
    scheduler = DelayedRowScheduler(conn, inventory, clock=clock)
    await scheduler.schedule(RowId("itm:2"), 10)
    clock.advance(1)
    await scheduler.schedule(RowId("itm:1"), 10)

    await scheduler.process_next()
    await scheduler.process_next()
    assert inventory.fetches == ["itm:2", "itm:1"]


@pytest.mark.asyncio
async def test_run_processes_until_stopped(conn, inventory):
    scheduler = DelayedRowScheduler(conn, inventory)
    await scheduler.schedule(RowId("itm:1"), 3600)
    stop = asyncio.Event()

    task = asyncio.create_task(scheduler.run(stop, idle=0.01))
    for _ in range(100):
        if await conn.exists("inv:itm:1"):
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert await scheduler.cached_row(RowId("itm:1")) == {"name": "Keyboard", "quantity": 3}
    assert inventory.fetches == ["itm:1"]


class FlakyInventory(FakeInventory):
    """Refuses the first `failures` connections, then serves rows."""

    def __init__(self, rows: dict[str, dict[str, Any]], failures: int = 1) -> None:
        super().__init__(rows)
        self.failures = failures

    async def fetch_row(self, row_id: RowId) -> dict[str, Any] | None:
        if self.failures:
            self.failures -= 1
            raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 5432)")
        return await super().fetch_row(row_id)


@pytest.mark.asyncio
async def test_run_survives_refused_inventory_connection(conn):
    inventory = FlakyInventory({"itm:1": {"name": "Keyboard", "quantity": 3}})
    scheduler = DelayedRowScheduler(conn, inventory)
    await scheduler.schedule(RowId("itm:1"), 3600)
    stop = asyncio.Event()

    task = asyncio.create_task(scheduler.run(stop, idle=0.01, error_backoff=0.01))
    for _ in range(100):
        if await conn.exists("inv:itm:1"):
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert inventory.failures == 0
    assert await scheduler.cached_row(RowId("itm:1")) == {"name": "Keyboard", "quantity": 3}
    # The row stays scheduled after the failed attempt.
    assert await conn.zscore("delay:", "itm:1") == 3600


@pytest.mark.asyncio
async def test_sql_inventory_uninitialized_is_unavailable(monkeypatch):
    import feedcache.stores.postgres as postgres

    monkeypatch.setattr(postgres, "_session_factory", None)

    with pytest.raises(InventoryUnavailableError):
        await SqlInventory().fetch_row(RowId("itm:1"))
