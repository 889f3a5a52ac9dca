"""Article endpoints.

POST /v1/articles                      - post an article
GET  /v1/articles                      - page through articles by score/time
POST /v1/articles/{article_id}/vote    - upvote (once per user)
POST /v1/articles/{article_id}/downvote
POST /v1/articles/{article_id}/groups  - edit group membership
GET  /v1/groups/{group}/articles       - page through a group

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Depends, Path, Query

from feedcache.schemas import (
    ArticlePage,
    GroupsUpdateRequest,
    PostArticleRequest,
    PostArticleResponse,
    VoteRequest,
    VoteResponse,
)
from feedcache.routes.deps import get_article_ranking, get_group_index
from feedcache.services.articles import ArticleRanking
from feedcache.services.groups import GroupIndex
from feedcache.services.keys import ArticleOrder, UserRef

router = APIRouter()

ARTICLE_ID = Path(description="Numeric article id", pattern=r"^[0-9]+$", max_length=20)
PAGE = Query(default=1, ge=1, description="1-indexed page number")
ORDER = Query(default="score", pattern=r"^(score|time)$", description="score or time")


def _order(name: str) -> ArticleOrder:
    return ArticleOrder.TIME if name == "time" else ArticleOrder.SCORE


@router.post("/articles", response_model=PostArticleResponse, status_code=201)
async def post_article(
    body: PostArticleRequest,
    articles: ArticleRanking = Depends(get_article_ranking),
) -> PostArticleResponse:
    article_id = await articles.post(UserRef(body.user), body.title, body.link)
    return PostArticleResponse(article_id=article_id)


@router.get("/articles", response_model=ArticlePage)
async def list_articles(
    page: int = PAGE,
    order: str = ORDER,
    articles: ArticleRanking = Depends(get_article_ranking),
) -> ArticlePage:
    ordering = _order(order)
    return ArticlePage(page=page, order=ordering, articles=await articles.list_articles(page, ordering))


@router.post("/articles/{article_id}/vote", response_model=VoteResponse)
async def vote(
    body: VoteRequest,
    article_id: str = ARTICLE_ID,
    articles: ArticleRanking = Depends(get_article_ranking),
) -> VoteResponse:
    return VoteResponse(counted=await articles.vote(UserRef(body.user), article_id))


@router.post("/articles/{article_id}/downvote", response_model=VoteResponse)
async def downvote(
    body: VoteRequest,
    article_id: str = ARTICLE_ID,
    articles: ArticleRanking = Depends(get_article_ranking),
) -> VoteResponse:
    return VoteResponse(counted=await articles.downvote(UserRef(body.user), article_id))


@router.post("/articles/{article_id}/groups", status_code=204)
async def update_groups(
    body: GroupsUpdateRequest,
    article_id: str = ARTICLE_ID,
    groups: GroupIndex = Depends(get_group_index),
) -> None:
    await groups.add_remove_groups(article_id, to_add=body.add, to_remove=body.remove)


@router.get("/groups/{group}/articles", response_model=ArticlePage)
async def list_group_articles(
    group: str = Path(min_length=1, max_length=100, pattern=r"^[a-zA-Z0-9_-]+$"),
    page: int = PAGE,
    order: str = ORDER,
    groups: GroupIndex = Depends(get_group_index),
) -> ArticlePage:
    ordering = _order(order)
    return ArticlePage(page=page, order=ordering, articles=await groups.list_group(group, page, ordering))
