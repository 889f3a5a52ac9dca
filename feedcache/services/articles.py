"""Article ranking service.

Structures (see stores/redis.py for the full key layout):
- article:<id>  hash  title, link, poster, time, votes
- voted:<id>    set   users that voted; expires one week after posting
- score:        zset  "hot" ordering, time + VOTE_SCORE per vote
- time:         zset  posting time, also the voting-window cutoff

Duplicate votes are prevented by SADD/SREM alone: only the call that changes
ledger membership touches the counters. Counter updates are sent as one
MULTI/EXEC pipeline so `votes` and `score:` never drift apart.
"""

from __future__ import annotations

import logging

from feedcache.schemas.articles import Article
from feedcache.services.keys import (
    ARTICLE_COUNTER,
    ARTICLES_PER_PAGE,
    DOWNVOTE_PENALTY,
    ONE_WEEK_IN_SECONDS,
    VOTE_SCORE,
    ArticleOrder,
    ArticleRef,
    Clock,
    UserRef,
    article_id_of,
    article_key,
    default_clock,
    voted_key,
)
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")


def order_key(order: ArticleOrder | str) -> str:
    """Resolve an ordering (enum or raw zset key) to its Redis key."""
    if isinstance(order, ArticleOrder):
        return order.value
    return order


class ArticleRanking:
    """Post, vote on and page through articles."""

    def __init__(self, conn: OrderedStore, clock: Clock = default_clock) -> None:
        self.conn = conn
        self.clock = clock

    async def post(self, user: UserRef, title: str, link: str) -> str:
        """Create an article with the poster's implicit first vote.

        Returns:
            The new numeric article id as a string (e.g. "1").
        """
        article_id = str(await self.conn.incr(ARTICLE_COUNTER))

        voted = voted_key(article_id)
        now = self.clock()
        article = article_key(article_id)

        async with self.conn.pipeline(transaction=True) as pipe:
            pipe.sadd(voted, user)
            pipe.expire(voted, ONE_WEEK_IN_SECONDS)
            pipe.hset(
                article,
                mapping={
                    "title": title,
                    "link": link,
                    "poster": user,
                    "time": now,
                    "votes": 1,
                },
            )
            pipe.zadd(ArticleOrder.SCORE.value, {article: now + VOTE_SCORE})
            pipe.zadd(ArticleOrder.TIME.value, {article: now})
            await pipe.execute()

        logger.info(f"Article posted: {article} by {user}")
        return article_id

    async def vote(self, user: UserRef, article: ArticleRef | str) -> bool:
        """Upvote an article once per user.

        Returns:
            True if the vote counted, False for duplicates, unknown articles
            and articles past the one-week voting window.
        """
        article_id = article_id_of(article)
        article = article_key(article_id)
        if not await self._voting_open(article):
            return False

        if not await self.conn.sadd(voted_key(article_id), user):
            return False

        async with self.conn.pipeline(transaction=True) as pipe:
            pipe.zincrby(ArticleOrder.SCORE.value, VOTE_SCORE, article)
            pipe.hincrby(article, "votes", 1)
            await pipe.execute()
        return True

    async def downvote(self, user: UserRef, article: ArticleRef | str) -> bool:
        """Withdraw a user's vote, costing the article DOWNVOTE_PENALTY.

        Returns:
            True if the user had voted and the vote was removed.
        """
        article_id = article_id_of(article)
        article = article_key(article_id)
        if not await self._voting_open(article):
            return False

        if not await self.conn.srem(voted_key(article_id), user):
            return False

        async with self.conn.pipeline(transaction=True) as pipe:
            pipe.zincrby(ArticleOrder.SCORE.value, -DOWNVOTE_PENALTY, article)
            pipe.hincrby(article, "votes", -1)
            await pipe.execute()
        return True

    async def list_articles(self, page: int, order: ArticleOrder | str = ArticleOrder.SCORE) -> list[Article]:
        """Page through articles, highest score (or newest) first.

        Args:
            page: 1-indexed page number. Out-of-range pages return [].
            order: ArticleOrder or the key of any article zset
                (e.g. a cached group ordering).
        """
        if page < 1:
            return []

        start = (page - 1) * ARTICLES_PER_PAGE
        end = start + ARTICLES_PER_PAGE - 1

        ids = await self.conn.zrevrange(order_key(order), start, end)
        if not ids:
            return []

        async with self.conn.pipeline(transaction=False) as pipe:
            for article in ids:
                pipe.hgetall(article)
            rows = await pipe.execute()

        articles: list[Article] = []
        for article, data in zip(ids, rows):
            if not data:
                # Listed in the index but the hash is gone; nothing to show.
                continue
            articles.append(Article(id=article, **data))
        return articles

    async def get(self, article: ArticleRef | str) -> Article | None:
        """Hydrate a single article, or None if it does not exist."""
        article = article_key(article_id_of(article))
        data = await self.conn.hgetall(article)
        if not data:
            return None
        return Article(id=article, **data)

    async def _voting_open(self, article: str) -> bool:
        posted = await self.conn.zscore(ArticleOrder.TIME.value, article)
        if posted is None:
            return False
        return posted >= self.clock() - ONE_WEEK_IN_SECONDS
