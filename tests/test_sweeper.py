"""Tests for the session sweeper."""

import asyncio

import pytest

from feedcache.services.keys import ItemRef, SessionToken, UserRef
from feedcache.services.popularity import ViewPopularityTracker
from feedcache.services.sessions import SessionRegistry
from feedcache.services.sweeper import SessionSweeper


async def _seed_sessions(conn, clock, count: int) -> list[str]:
    sessions = SessionRegistry(conn, ViewPopularityTracker(conn), clock=clock)
    tokens = []
    for i in range(count):
        token = SessionToken(f"tok-{i}")
        await sessions.update_token(token, UserRef(f"user:{i}"), ItemRef(f"itm:{i}"))
        await sessions.add_to_cart(token, ItemRef(f"itm:{i}"), 1)
        tokens.append(token)
        clock.advance(1)
    return tokens


@pytest.mark.asyncio
async def test_within_limit_evicts_nothing(conn, clock):
    await _seed_sessions(conn, clock, 3)
    sweeper = SessionSweeper(conn, limit=3)
    assert await sweeper.sweep_once() == 0
    assert await conn.zcard("recent:") == 3


@pytest.mark.asyncio
async def test_evicts_oldest_sessions_and_their_state(conn, clock):
    tokens = await _seed_sessions(conn, clock, 5)
    sweeper = SessionSweeper(conn, limit=2)

    assert await sweeper.sweep_once() == 3

    for token in tokens[:3]:
        assert await conn.hget("login:", token) is None
        assert await conn.zscore("recent:", token) is None
        assert not await conn.exists(f"viewed:{token}")
        assert not await conn.exists(f"cart:{token}")
    for token in tokens[3:]:
        assert await conn.hget("login:", token) is not None
        assert await conn.exists(f"cart:{token}")
    # Global popularity is not session state.
    assert await conn.zcard("viewed:") == 5


@pytest.mark.asyncio
async def test_eviction_is_bounded_by_batch(conn, clock):
    tokens = await _seed_sessions(conn, clock, 5)
    sweeper = SessionSweeper(conn, limit=0, batch=2)

    assert await sweeper.sweep_once() == 2
    assert await conn.zrange("recent:", 0, -1) == tokens[2:]


@pytest.mark.asyncio
async def test_run_sweeps_until_stopped(conn, clock):
    await _seed_sessions(conn, clock, 4)
    sweeper = SessionSweeper(conn, limit=1, batch=1)
    stop = asyncio.Event()

    task = asyncio.create_task(sweeper.run(stop, idle=0.01))
    for _ in range(100):
        if await conn.zcard("recent:") == 1:
            break
        await asyncio.sleep(0.01)
    stop.set()
    iterations = await asyncio.wait_for(task, timeout=1)

    assert await conn.zcard("recent:") == 1
    assert iterations >= 3


@pytest.mark.asyncio
async def test_run_returns_immediately_when_already_stopped(conn):
    stop = asyncio.Event()
    stop.set()
    assert await SessionSweeper(conn).run(stop) == 0
