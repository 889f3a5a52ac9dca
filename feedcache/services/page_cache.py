"""Page cache with popularity-based admission.

Flow for `serve(request, compute)`:
1. Ask the request policy for the item the request is about
2. Bypass the cache (no Redis writes) if there is no item, the request is
   dynamic, or the item is outside the top `cache_rank_limit` by popularity
3. Otherwise look up `cache:<hash>`; on a miss compute and store it for
   PAGE_CACHE_TTL seconds

Request shape is pluggable via `RequestPolicy`. The default policy handles
plain URLs: `?item=<id>` names the item and any `_` parameter (cache buster)
marks the request as dynamic.
"""

import hashlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from feedcache.services.keys import PAGE_CACHE_TTL, ItemRef, page_cache_key
from feedcache.services.popularity import ViewPopularityTracker
from feedcache.stores.redis import OrderedStore

logger = logging.getLogger("uvicorn.error")

Compute = Callable[[Any], Awaitable[str]]


@dataclass(frozen=True)
class RequestPolicy:
    """How to classify and key one kind of request."""

    extract_item_id: Callable[[Any], ItemRef | None]
    is_dynamic: Callable[[Any], bool]
    hash_request: Callable[[Any], str]


def extract_item_id_from_url(url: str) -> ItemRef | None:
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    item = query.get("item")
    return ItemRef(item) if item else None


def is_dynamic_url(url: str) -> bool:
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    return "_" in query


def hash_url(url: str) -> str:
    """Stable hash of a URL; query parameter order does not matter."""
    parts = urlsplit(url)
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    normalized = urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


URL_POLICY = RequestPolicy(
    extract_item_id=extract_item_id_from_url,
    is_dynamic=is_dynamic_url,
    hash_request=hash_url,
)


class PageCache:
    def __init__(
        self,
        conn: OrderedStore,
        popularity: ViewPopularityTracker,
        policy: RequestPolicy = URL_POLICY,
        ttl: int = PAGE_CACHE_TTL,
    ) -> None:
        self.conn = conn
        self.popularity = popularity
        self.policy = policy
        self.ttl = ttl

    async def can_cache(self, request: Any) -> bool:
        item = self.policy.extract_item_id(request)
        if not item or self.policy.is_dynamic(request):
            return False
        return await self.popularity.is_cache_eligible(item)

    async def serve(self, request: Any, compute: Compute) -> str:
        """Return the page for `request`, from cache when admitted."""
        if not await self.can_cache(request):
            return await compute(request)

        page_key = page_cache_key(self.policy.hash_request(request))
        content = await self.conn.get(page_key)
        if content is None:
            content = await compute(request)
            await self.conn.setex(page_key, self.ttl, content)
            logger.debug(f"Page cache miss, stored {page_key}")
        return content
