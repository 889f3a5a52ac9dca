"""FastAPI application entry point.

Feedcache API - article ranking, sessions and page caching on Redis.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from feedcache.routes import api_router
from feedcache.schemas import ErrorDetail, ErrorResponse
from feedcache.services.inventory import SqlInventory
from feedcache.services.workers import BackgroundWorkers
from feedcache.settings import get_settings
from feedcache.stores.postgres import init_db, close_db, ping_db
from feedcache.stores.redis import init_redis, close_redis, get_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()

    # Inventory rows live in Postgres; without it the row scheduler logs and retries.
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    await init_redis()

    workers: BackgroundWorkers | None = None
    if settings.background_tasks_enabled:
        workers = BackgroundWorkers(get_redis(), SqlInventory(), settings)
        workers.start()

    yield

    # Shutdown
    if workers is not None:
        await workers.stop()
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Article ranking, sessions and page caching on Redis",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        body = ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message=str(exc) if settings.debug else "Internal server error",
            )
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "feedcache.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
