"""Cooperative polling loop shared by the background workers.

Workers never talk to each other; they only share the Redis store. Each one is
a `step` coroutine driven by `run_until_stopped`:

- `step()` returns True when it did work -> run again immediately
- `step()` returns False when idle -> wait `idle` seconds (or until stopped)
- Store errors (`retry_on`, Redis by default) are logged and retried after `error_backoff` seconds

The stop event is only checked between steps, so a step is never interrupted
halfway through.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from redis.exceptions import RedisError

logger = logging.getLogger("uvicorn.error")

Step = Callable[[], Awaitable[bool]]


async def wait_or_stop(stop: asyncio.Event, seconds: float) -> None:
    """Sleep for `seconds`, returning early if `stop` gets set."""
    if seconds <= 0:
        # Still yield to the event loop so a busy worker can't starve others.
        await asyncio.sleep(0)
        return
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def run_until_stopped(
    step: Step,
    stop: asyncio.Event,
    *,
    idle: float,
    name: str,
    error_backoff: float = 5.0,
    retry_on: tuple[type[Exception], ...] = (RedisError,),
) -> int:
    """Drive `step` until `stop` is set.

    Returns:
        Number of iterations executed (handy for tests and shutdown logs).
    """
    logger.info(f"{name} started")
    iterations = 0
    while not stop.is_set():
        iterations += 1
        try:
            worked = await step()
        except retry_on:
            logger.exception(f"{name} step failed, retrying in {error_backoff}s")
            await wait_or_stop(stop, error_backoff)
            continue

        if not worked:
            await wait_or_stop(stop, idle)
    logger.info(f"{name} stopped after {iterations} iterations")
    return iterations
