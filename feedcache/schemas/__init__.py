"""Pydantic schemas for API request/response validation."""

from feedcache.schemas.articles import (
    Article,
    ArticlePage,
    GroupsUpdateRequest,
    PostArticleRequest,
    PostArticleResponse,
    VoteRequest,
    VoteResponse,
)
from feedcache.schemas.common import ErrorDetail, ErrorResponse
from feedcache.schemas.sessions import (
    CartLineRequest,
    RowScheduleRequest,
    SessionResponse,
    SessionUpdateRequest,
)

__all__ = [
    "Article",
    "ArticlePage",
    "CartLineRequest",
    "ErrorDetail",
    "ErrorResponse",
    "GroupsUpdateRequest",
    "PostArticleRequest",
    "PostArticleResponse",
    "RowScheduleRequest",
    "SessionResponse",
    "SessionUpdateRequest",
    "VoteRequest",
    "VoteResponse",
]
