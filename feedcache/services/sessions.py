"""Session registry: login tokens, recency, recently viewed items and carts.

Structures:
- login:          hash  token -> user
- recent:         zset  token -> last seen timestamp
- viewed:<token>  zset  item -> view timestamp (25 newest kept)
- cart:<token>    hash  item -> quantity

Everything keyed by a token is removed together by the SessionSweeper.
"""

from feedcache.services.keys import (
    LOGIN,
    RECENT,
    VIEWED_ITEMS_LIMIT,
    Clock,
    ItemRef,
    SessionToken,
    UserRef,
    cart_key,
    default_clock,
    viewed_key,
)
from feedcache.services.popularity import ViewPopularityTracker
from feedcache.stores.redis import OrderedStore


class SessionRegistry:
    def __init__(
        self,
        conn: OrderedStore,
        popularity: ViewPopularityTracker,
        clock: Clock = default_clock,
    ) -> None:
        self.conn = conn
        self.popularity = popularity
        self.clock = clock

    async def check_token(self, token: SessionToken) -> UserRef | None:
        """Return the user bound to `token`, or None for unknown/evicted sessions."""
        user = await self.conn.hget(LOGIN, token)
        return UserRef(user) if user is not None else None

    async def update_token(
        self,
        token: SessionToken,
        user: UserRef,
        item: ItemRef | None = None,
    ) -> None:
        """Bind `token` to `user`, mark it active, and record an item view."""
        _require_token(token)
        timestamp = self.clock()

        await self.conn.hset(LOGIN, token, user)
        await self.conn.zadd(RECENT, {token: timestamp})

        if item:
            viewed = viewed_key(token)
            await self.conn.zadd(viewed, {item: timestamp})
            # Keep only the newest VIEWED_ITEMS_LIMIT entries.
            await self.conn.zremrangebyrank(viewed, 0, -(VIEWED_ITEMS_LIMIT + 1))
            await self.popularity.record_view(item)

    async def viewed_items(self, token: SessionToken) -> list[ItemRef]:
        """Items the session viewed, newest first."""
        items = await self.conn.zrevrange(viewed_key(token), 0, -1)
        return [ItemRef(item) for item in items]

    async def add_to_cart(self, token: SessionToken, item: ItemRef, count: int) -> None:
        """Set an item's quantity; a count of zero or less removes the line."""
        _require_token(token)
        if count <= 0:
            await self.conn.hdel(cart_key(token), item)
        else:
            await self.conn.hset(cart_key(token), item, count)

    async def cart(self, token: SessionToken) -> dict[str, int]:
        lines = await self.conn.hgetall(cart_key(token))
        return {item: int(count) for item, count in lines.items()}


def _require_token(token: SessionToken) -> None:
    # viewed:<token> and cart:<token> with an empty token would alias the
    # global viewed: popularity zset (and a bare cart: hash).
    if not token:
        raise ValueError("Session token must not be empty")
