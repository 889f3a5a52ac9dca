"""Group membership and group-scoped article listings.

A group is a plain set of article keys (`group:<name>`). Listing a group
intersects it with an article ordering into `<order><group>` (e.g.
`score:programming`), cached for GROUP_CACHE_TTL seconds.

Two requests that miss the cache at the same time will both run ZINTERSTORE.
The result is the same either way, so the duplicate work is tolerated.
"""

from collections.abc import Iterable

from feedcache.schemas.articles import Article
from feedcache.services.articles import ArticleRanking, order_key
from feedcache.services.keys import (
    GROUP_CACHE_TTL,
    ArticleOrder,
    article_id_of,
    article_key,
    group_key,
    group_order_key,
)
from feedcache.stores.redis import OrderedStore


class GroupIndex:
    def __init__(self, conn: OrderedStore, articles: ArticleRanking) -> None:
        self.conn = conn
        self.articles = articles

    async def add_remove_groups(
        self,
        article_id: str,
        to_add: Iterable[str] = (),
        to_remove: Iterable[str] = (),
    ) -> None:
        article = article_key(article_id_of(article_id))
        for group in to_add:
            await self.conn.sadd(group_key(group), article)
        for group in to_remove:
            await self.conn.srem(group_key(group), article)

    async def add_to_groups(self, article_id: str, groups: Iterable[str]) -> None:
        await self.add_remove_groups(article_id, to_add=groups)

    async def remove_from_groups(self, article_id: str, groups: Iterable[str]) -> None:
        await self.add_remove_groups(article_id, to_remove=groups)

    async def list_group(
        self,
        group: str,
        page: int,
        order: ArticleOrder | str = ArticleOrder.SCORE,
    ) -> list[Article]:
        """Page through one group's articles in the given ordering."""
        base = order_key(order)
        key = group_order_key(base, group)

        if not await self.conn.exists(key):
            await self.conn.zinterstore(key, [group_key(group), base], aggregate="MAX")
            await self.conn.expire(key, GROUP_CACHE_TTL)

        return await self.articles.list_articles(page, key)
