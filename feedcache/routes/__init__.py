"""API routes."""

from fastapi import APIRouter

from feedcache.routes import articles, items, sessions

api_router = APIRouter()

# Articles, votes and groups
api_router.include_router(articles.router, prefix="/v1", tags=["articles"])

# Sessions and carts
api_router.include_router(sessions.router, prefix="/v1/sessions", tags=["sessions"])

# Page-cached item views and row refresh scheduling
api_router.include_router(items.router, prefix="/v1", tags=["items"])
