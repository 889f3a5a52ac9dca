"""Redis store: the shared ordered key-value backend.

Handles:
- Connection lifecycle (one client per process)
- The command surface services are allowed to rely on (`OrderedStore`)

Every individual command is atomic on the server. Multi-command sequences are
not, unless a service wraps them in a MULTI/EXEC pipeline.

Key layout (see services/keys.py):
- article:<id>       hash   article record
- voted:<id>         set    vote ledger (expires after one week)
- score: / time:     zset   article orderings
- group:<name>       set    group membership
- login: / recent:   hash / zset   session bindings and recency
- viewed:<token>     zset   last 25 items seen by a session
- viewed:            zset   global popularity (lower = more popular)
- cart:<token>       hash   cart lines
- delay: / schedule: zset   row re-cache scheduler
- inv:<row>          string cached inventory row (JSON)
- cache:<hash>       string cached page (300s TTL)
"""

import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, Protocol

import redis.asyncio as redis

from feedcache.settings import get_settings

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


class OrderedStore(Protocol):
    """Commands the services issue against the store.

    `redis.asyncio.Redis` satisfies this protocol; tests use
    `fakeredis.FakeAsyncRedis`.
    """

    # strings
    def get(self, name: str) -> Awaitable[Any]: ...
    def set(self, name: str, value: Any, *args: Any, **kwargs: Any) -> Awaitable[Any]: ...
    def setex(self, name: str, time: int, value: Any) -> Awaitable[Any]: ...
    def delete(self, *names: str) -> Awaitable[int]: ...
    def exists(self, *names: str) -> Awaitable[int]: ...
    def incr(self, name: str, amount: int = 1) -> Awaitable[int]: ...
    def expire(self, name: str, time: int) -> Awaitable[Any]: ...

    # hashes
    def hget(self, name: str, key: str) -> Awaitable[Any]: ...
    def hset(self, name: str, *args: Any, **kwargs: Any) -> Awaitable[int]: ...
    def hdel(self, name: str, *keys: str) -> Awaitable[int]: ...
    def hgetall(self, name: str) -> Awaitable[dict[Any, Any]]: ...
    def hincrby(self, name: str, key: str, amount: int = 1) -> Awaitable[int]: ...

    # sets
    def sadd(self, name: str, *values: Any) -> Awaitable[int]: ...
    def srem(self, name: str, *values: Any) -> Awaitable[int]: ...
    def sismember(self, name: str, value: Any) -> Awaitable[Any]: ...

    # sorted sets
    def zadd(self, name: str, mapping: Mapping[Any, float], *args: Any, **kwargs: Any) -> Awaitable[Any]: ...
    def zincrby(self, name: str, amount: float, value: Any) -> Awaitable[float]: ...
    def zscore(self, name: str, value: Any) -> Awaitable[float | None]: ...
    def zrank(self, name: str, value: Any) -> Awaitable[int | None]: ...
    def zcard(self, name: str) -> Awaitable[int]: ...
    def zrange(self, name: str, start: int, end: int, *args: Any, **kwargs: Any) -> Awaitable[list[Any]]: ...
    def zrevrange(self, name: str, start: int, end: int, *args: Any, **kwargs: Any) -> Awaitable[list[Any]]: ...
    def zrem(self, name: str, *values: Any) -> Awaitable[int]: ...
    def zremrangebyrank(self, name: str, min: int, max: int) -> Awaitable[int]: ...
    def zinterstore(
        self,
        dest: str,
        keys: Iterable[str] | Mapping[str, float],
        aggregate: str | None = None,
    ) -> Awaitable[int]: ...

    # transactions
    def pipeline(self, transaction: bool = True) -> Any: ...


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early.
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
