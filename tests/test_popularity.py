"""Tests for popularity tracking, decay and cache admission."""

import asyncio

import pytest

from feedcache.services.keys import ItemRef
from feedcache.services.popularity import ViewPopularityTracker


async def _views(tracker: ViewPopularityTracker, counts: dict[str, int]) -> None:
    for item, count in counts.items():
        for _ in range(count):
            await tracker.record_view(ItemRef(item))


@pytest.mark.asyncio
async def test_more_views_rank_higher(conn):
    tracker = ViewPopularityTracker(conn)
    await _views(tracker, {"itm:a": 3, "itm:b": 1})

    assert await tracker.rank(ItemRef("itm:a")) == 0
    assert await tracker.rank(ItemRef("itm:b")) == 1
    assert await tracker.rank(ItemRef("itm:none")) is None


@pytest.mark.asyncio
async def test_cache_eligibility_uses_rank_limit(conn):
    tracker = ViewPopularityTracker(conn, cache_rank_limit=1)
    await _views(tracker, {"itm:a": 3, "itm:b": 1})

    assert await tracker.is_cache_eligible(ItemRef("itm:a")) is True
    assert await tracker.is_cache_eligible(ItemRef("itm:b")) is False
    assert await tracker.is_cache_eligible(ItemRef("itm:never")) is False


@pytest.mark.asyncio
async def test_rescale_truncates_and_decays(conn):
    tracker = ViewPopularityTracker(conn, keep=2)
    await _views(tracker, {"itm:a": 4, "itm:b": 2, "itm:c": 1})

    await tracker.rescale_once()

    assert await conn.zrange("viewed:", 0, -1, withscores=True) == [
        ("itm:a", -2.0),
        ("itm:b", -1.0),
    ]


@pytest.mark.asyncio
async def test_run_rescales_then_waits_for_interval(conn):
    tracker = ViewPopularityTracker(conn)
    await _views(tracker, {"itm:a": 2})
    stop = asyncio.Event()

    task = asyncio.create_task(tracker.run(stop, interval=60))
    for _ in range(100):
        if await conn.zscore("viewed:", "itm:a") == -1:
            break
        await asyncio.sleep(0.01)
    stop.set()
    iterations = await asyncio.wait_for(task, timeout=1)

    # One rescale, then the long interval wait was cut short by stop.
    assert iterations == 1
    assert await conn.zscore("viewed:", "itm:a") == -1
