"""Service providers for route handlers.

Each request builds lightweight service objects over the shared Redis client.
"""

from feedcache.services.articles import ArticleRanking
from feedcache.services.groups import GroupIndex
from feedcache.services.inventory import SqlInventory
from feedcache.services.page_cache import PageCache
from feedcache.services.popularity import ViewPopularityTracker
from feedcache.services.scheduler import DelayedRowScheduler
from feedcache.services.sessions import SessionRegistry
from feedcache.settings import get_settings
from feedcache.stores.redis import get_redis


def get_article_ranking() -> ArticleRanking:
    return ArticleRanking(get_redis())


def get_group_index() -> GroupIndex:
    conn = get_redis()
    return GroupIndex(conn, ArticleRanking(conn))


def get_popularity() -> ViewPopularityTracker:
    settings = get_settings()
    return ViewPopularityTracker(
        get_redis(),
        keep=settings.popularity_keep,
        decay_factor=settings.popularity_decay_factor,
        cache_rank_limit=settings.cache_rank_limit,
    )


def get_session_registry() -> SessionRegistry:
    return SessionRegistry(get_redis(), get_popularity())


def get_page_cache() -> PageCache:
    return PageCache(get_redis(), get_popularity())


def get_row_scheduler() -> DelayedRowScheduler:
    return DelayedRowScheduler(get_redis(), SqlInventory())
