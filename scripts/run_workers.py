#!/usr/bin/env python3
"""Standalone background worker process.

Runs the session sweeper, popularity decay and row scheduler without the API,
for deployments that set BACKGROUND_TASKS_ENABLED=false on the web process.

Run (local):
  python -m scripts.run_workers

Stops cleanly on SIGINT/SIGTERM: workers finish their current step, then exit.
"""

import asyncio
import logging
import os
import signal
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402

from feedcache.services.inventory import SqlInventory  # noqa: E402
from feedcache.services.workers import BackgroundWorkers  # noqa: E402
from feedcache.settings import get_settings  # noqa: E402
from feedcache.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from feedcache.stores.redis import close_redis, get_redis, init_redis  # noqa: E402

load_dotenv()

logger = logging.getLogger("uvicorn.error")


async def main() -> None:
    settings = get_settings()
    await init_redis()
    try:
        await init_db()
        await ping_db()
    except Exception:
        # Sweeper and decay still work; the row scheduler will back off and retry.
        logger.exception("Postgres init failed")

    workers = BackgroundWorkers(get_redis(), SqlInventory(), settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, workers.stop_event.set)

    workers.start()
    try:
        await workers.wait()
    finally:
        await workers.stop()
        await close_redis()
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    asyncio.run(main())
