"""
Event endpoints for the three audiences:

- initiator: /users/{user_id}/events
- admin:     /admin/events
- public:    /events (records a hit with the stats server)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.dates import parse_datetime
from ewm.db.session import get_db
from ewm.models.event import EventState
from ewm.schemas.event import (
    CapacityReconciliation,
    EventFullDto,
    EventShortDto,
    EventSort,
    NewEventDto,
    UpdateEventAdminRequest,
    UpdateEventUserRequest,
)
from ewm.services import capacity_service, event_service
from ewm.services.stats_service import StatsService, get_stats_service

private_router = APIRouter(prefix="/users/{user_id}/events", tags=["Private: Events"])
admin_router = APIRouter(prefix="/admin/events", tags=["Admin: Events"])
public_router = APIRouter(prefix="/events", tags=["Public: Events"])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# --- Initiator ---

@private_router.post("", response_model=EventFullDto, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    user_id: int,
    event_data: NewEventDto,
    db: AsyncSession = Depends(get_db),
):
    return await event_service.create_event(db, user_id, event_data)


@private_router.get("", response_model=list[EventShortDto])
async def list_user_events_endpoint(
    user_id: int,
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.get_user_events(db, stats, user_id, from_, size)


@private_router.get("/{event_id}", response_model=EventFullDto)
async def get_user_event_endpoint(
    user_id: int,
    event_id: int,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.get_user_event(db, stats, user_id, event_id)


@private_router.patch("/{event_id}", response_model=EventFullDto)
async def update_user_event_endpoint(
    user_id: int,
    event_id: int,
    data: UpdateEventUserRequest,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.update_event_by_user(db, stats, user_id, event_id, data)


# --- Admin ---

@admin_router.get("", response_model=list[EventFullDto])
async def search_events_admin_endpoint(
    users: Optional[list[int]] = Query(None),
    states: Optional[list[EventState]] = Query(None),
    categories: Optional[list[int]] = Query(None),
    range_start: Optional[str] = Query(None, alias="rangeStart"),
    range_end: Optional[str] = Query(None, alias="rangeEnd"),
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.search_events_admin(
        db,
        stats,
        users=users,
        states=states,
        categories=categories,
        range_start=parse_datetime(range_start, "rangeStart"),
        range_end=parse_datetime(range_end, "rangeEnd"),
        from_=from_,
        size=size,
    )


@admin_router.patch("/{event_id}", response_model=EventFullDto)
async def update_event_admin_endpoint(
    event_id: int,
    data: UpdateEventAdminRequest,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.update_event_by_admin(db, stats, event_id, data)


@admin_router.post("/{event_id}/reconcile", response_model=CapacityReconciliation)
async def reconcile_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Re-derive the confirmed-request counter from the request ledger and fix drift."""
    return CapacityReconciliation(**await capacity_service.reconcile(db, event_id))


# --- Public ---

@public_router.get("", response_model=list[EventShortDto])
async def search_events_public_endpoint(
    request: Request,
    text: Optional[str] = Query(None),
    categories: Optional[list[int]] = Query(None),
    paid: Optional[bool] = Query(None),
    range_start: Optional[str] = Query(None, alias="rangeStart"),
    range_end: Optional[str] = Query(None, alias="rangeEnd"),
    only_available: bool = Query(False, alias="onlyAvailable"),
    sort: Optional[EventSort] = Query(None),
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await event_service.search_events_public(
        db,
        stats,
        ip=_client_ip(request),
        uri=request.url.path,
        text=text,
        categories=categories,
        paid=paid,
        range_start=parse_datetime(range_start, "rangeStart"),
        range_end=parse_datetime(range_end, "rangeEnd"),
        only_available=only_available,
        sort=sort,
        from_=from_,
        size=size,
    )


@public_router.get("/{event_id}", response_model=EventFullDto)
async def get_event_public_endpoint(
    event_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    """A published event. Each call counts as one view from the caller's IP."""
    return await event_service.get_event_public(db, stats, event_id, _client_ip(request))
