"""Item pages and row refresh scheduling.

GET    /v1/items?item=<row_id>        - item page, served through the page cache
PUT    /v1/rows/{row_id}/schedule     - refresh inv:<row_id> every `delay` seconds
DELETE /v1/rows/{row_id}/schedule     - stop refreshing and drop inv:<row_id>

Item pages render the row snapshot the scheduler keeps in Redis; they never
read PostgreSQL directly.
"""

import json

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response

from feedcache.routes.deps import get_page_cache, get_row_scheduler
from feedcache.schemas import RowScheduleRequest
from feedcache.services.keys import RowId
from feedcache.services.page_cache import PageCache, extract_item_id_from_url
from feedcache.services.scheduler import DelayedRowScheduler

router = APIRouter()

ROW_ID = Path(min_length=1, max_length=200, pattern=r"^[a-zA-Z0-9:_-]+$")


@router.get("/items")
async def get_item_page(
    request: Request,
    item: str = Query(min_length=1, max_length=200),
    cache: PageCache = Depends(get_page_cache),
    rows: DelayedRowScheduler = Depends(get_row_scheduler),
) -> Response:
    async def render(url: str) -> str:
        row_id = extract_item_id_from_url(url) or item
        row = await rows.cached_row(RowId(row_id))
        if row is None:
            raise HTTPException(
                status_code=404,
                detail={
                    "error": {
                        "code": "ITEM_NOT_CACHED",
                        "message": f"Item {row_id} is not scheduled for caching",
                        "detail": {"item": row_id},
                    }
                },
            )
        return json.dumps({"item": row_id, "row": row})

    content = await cache.serve(str(request.url), render)
    return Response(content=content, media_type="application/json")


@router.put("/rows/{row_id}/schedule", status_code=204)
async def schedule_row(
    body: RowScheduleRequest,
    row_id: str = ROW_ID,
    rows: DelayedRowScheduler = Depends(get_row_scheduler),
) -> None:
    await rows.schedule(RowId(row_id), body.delay)


@router.delete("/rows/{row_id}/schedule", status_code=204)
async def unschedule_row(
    row_id: str = ROW_ID,
    rows: DelayedRowScheduler = Depends(get_row_scheduler),
) -> None:
    await rows.unschedule(RowId(row_id))
