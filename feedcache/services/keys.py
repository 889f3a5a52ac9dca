"""Identifier types, key layout and shared constants.

Every Redis key the services touch is built here so prefixes stay in one place.
"""

import time
from collections.abc import Callable
from enum import Enum
from typing import NewType

UserRef = NewType("UserRef", str)  # e.g. "user:83271"
ArticleRef = NewType("ArticleRef", str)  # e.g. "article:92617"
SessionToken = NewType("SessionToken", str)
ItemRef = NewType("ItemRef", str)
RowId = NewType("RowId", str)

Clock = Callable[[], float]
default_clock: Clock = time.time

# Articles
ONE_WEEK_IN_SECONDS = 7 * 86400
VOTE_SCORE = 342
# Downvotes cost more than upvotes earn; keep the asymmetry.
DOWNVOTE_PENALTY = 432
ARTICLES_PER_PAGE = 25
GROUP_CACHE_TTL = 60

# Sessions
VIEWED_ITEMS_LIMIT = 25

# Page cache
PAGE_CACHE_TTL = 300

ARTICLE_COUNTER = "article:"
LOGIN = "login:"
RECENT = "recent:"
POPULARITY = "viewed:"
DELAY = "delay:"
SCHEDULE = "schedule:"


class ArticleOrder(str, Enum):
    """Sorted sets an article listing can be read from."""

    SCORE = "score:"
    TIME = "time:"


def article_key(article_id: str) -> ArticleRef:
    return ArticleRef(f"article:{article_id}")


def article_id_of(article: str) -> str:
    """`"article:12"` -> `"12"`; bare ids pass through."""
    return article.partition(":")[-1] if ":" in article else article


def voted_key(article_id: str) -> str:
    return f"voted:{article_id}"


def group_key(group: str) -> str:
    return f"group:{group}"


def group_order_key(order: str, group: str) -> str:
    return f"{order}{group}"


def viewed_key(token: str) -> str:
    return f"viewed:{token}"


def cart_key(token: str) -> str:
    return f"cart:{token}"


def inventory_key(row_id: str) -> str:
    return f"inv:{row_id}"


def page_cache_key(request_hash: str) -> str:
    return f"cache:{request_hash}"
