"""
Hit recording and view aggregation.

`query_views` groups hits in [start, end] by (app, uri). With unique=True
each distinct caller IP counts once per (app, uri); otherwise every row
counts. Results are ordered by hit count, highest first.
"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import InvalidArgumentError
from ewm.core.logging import get_logger
from ewm.core.metrics import hits_recorded
from ewm.stats.models import EndpointHit
from ewm.stats.schemas import EndpointHitDto, ViewStatsDto

logger = get_logger(__name__)


async def record_hit(db: AsyncSession, hit_data: EndpointHitDto) -> EndpointHit:
    hit = EndpointHit(
        app=hit_data.app,
        uri=hit_data.uri,
        ip=hit_data.ip,
        timestamp=hit_data.timestamp,
    )
    db.add(hit)
    await db.flush()

    hits_recorded.labels(app=hit.app).inc()
    logger.debug("hit_recorded", hit_id=hit.id, app=hit.app, uri=hit.uri)
    return hit


async def query_views(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    uris: Optional[Sequence[str]] = None,
    unique: bool = False,
) -> list[ViewStatsDto]:
    if start > end:
        raise InvalidArgumentError("Start date must be before end date")

    if unique:
        hits = func.count(func.distinct(EndpointHit.ip))
    else:
        hits = func.count(EndpointHit.id)
    hits = hits.label("hits")

    query = (
        select(EndpointHit.app, EndpointHit.uri, hits)
        .where(EndpointHit.timestamp >= start, EndpointHit.timestamp <= end)
        .group_by(EndpointHit.app, EndpointHit.uri)
        .order_by(desc("hits"), EndpointHit.uri)
    )
    if uris:
        query = query.where(EndpointHit.uri.in_(list(uris)))

    result = await db.execute(query)
    return [ViewStatsDto(app=row.app, uri=row.uri, hits=row.hits) for row in result]
