"""Schemas for article posting, voting and listing."""

from pydantic import BaseModel, Field

from feedcache.services.keys import ArticleOrder


class Article(BaseModel):
    """Hydrated snapshot of an `article:<id>` hash."""

    id: str
    title: str
    link: str
    poster: str
    time: float
    votes: int


class PostArticleRequest(BaseModel):
    user: str = Field(min_length=1, max_length=200)
    title: str = Field(min_length=1, max_length=500)
    link: str = Field(min_length=1, max_length=2000)


class PostArticleResponse(BaseModel):
    article_id: str = Field(alias="articleId")

    model_config = {"populate_by_name": True}


class VoteRequest(BaseModel):
    user: str = Field(min_length=1, max_length=200)


class VoteResponse(BaseModel):
    """`counted` is False for duplicate votes and closed voting windows."""

    counted: bool


class GroupsUpdateRequest(BaseModel):
    add: list[str] = Field(default_factory=list)
    remove: list[str] = Field(default_factory=list)


class ArticlePage(BaseModel):
    page: int = Field(ge=1)
    order: ArticleOrder
    articles: list[Article]
