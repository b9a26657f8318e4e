"""
Stats server endpoints: POST /hit and GET /stats.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.dates import parse_datetime
from ewm.core.exceptions import InvalidArgumentError
from ewm.stats.db import get_stats_db
from ewm.stats.schemas import EndpointHitDto, ViewStatsDto
from ewm.stats.service import query_views, record_hit

router = APIRouter(tags=["Statistics"])


@router.post("/hit", status_code=status.HTTP_201_CREATED)
async def save_hit(hit_data: EndpointHitDto, db: AsyncSession = Depends(get_stats_db)):
    """Append one hit. The body is echoed back with its id."""
    hit = await record_hit(db, hit_data)
    return EndpointHitDto.model_validate(hit)


@router.get("/stats", response_model=list[ViewStatsDto])
async def get_stats(
    start: str = Query(...),
    end: str = Query(...),
    uris: Optional[list[str]] = Query(None),
    unique: bool = Query(False),
    db: AsyncSession = Depends(get_stats_db),
):
    """
    View counts per (app, uri) in [start, end].
    `uris` may be repeated or comma separated.
    """
    start_dt = parse_datetime(start, "start")
    end_dt = parse_datetime(end, "end")
    if start_dt is None or end_dt is None:
        raise InvalidArgumentError("Start and end dates must not be empty")

    uri_filter = None
    if uris:
        uri_filter = [u.strip() for item in uris for u in item.split(",") if u.strip()]

    return await query_views(db, start_dt, end_dt, uri_filter, unique)
