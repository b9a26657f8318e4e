"""
Event service: authoring, moderation by admins, and public search.

Every event returned to a client is enriched with its view count from the
stats server. That lookup never fails the request (see stats_service).
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ewm.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.pagination import paginate
from ewm.core.patch import SetTo, apply_update, field_update
from ewm.db.session import release_connection
from ewm.models.category import Category
from ewm.models.event import Event, EventState
from ewm.models.user import User
from ewm.schemas.event import (
    AdminStateAction,
    EventFullDto,
    EventShortDto,
    EventSort,
    NewEventDto,
    UpdateEventAdminRequest,
    UpdateEventRequest,
    UpdateEventUserRequest,
    UserStateAction,
)
from ewm.services.stats_service import StatsService, event_uri

logger = get_logger(__name__)

# Minimum lead time between now and the event date
MIN_LEAD_TIME_USER = timedelta(hours=2)
MIN_LEAD_TIME_PUBLISH = timedelta(hours=1)


def _event_query():
    return select(Event).options(selectinload(Event.category), selectinload(Event.initiator))


async def load_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(
        _event_query()
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found")
    return event


async def _get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category with id={category_id} was not found")
    return category


def _check_date_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidArgumentError("rangeStart must be before rangeEnd")


async def to_short_dtos(db: AsyncSession, stats: StatsService, events: Sequence[Event]) -> list[EventShortDto]:
    await release_connection(db)
    views = await stats.get_views([e.id for e in events])
    return [EventShortDto.from_event(e, views.get(e.id, 0)) for e in events]


async def to_full_dtos(db: AsyncSession, stats: StatsService, events: Sequence[Event]) -> list[EventFullDto]:
    await release_connection(db)
    views = await stats.get_views([e.id for e in events])
    return [EventFullDto.from_event(e, views.get(e.id, 0)) for e in events]


async def _to_full_dto(db: AsyncSession, stats: StatsService, event: Event) -> EventFullDto:
    await release_connection(db)
    return EventFullDto.from_event(event, await stats.get_event_views(event.id))


async def _apply_common_updates(db: AsyncSession, event: Event, data: UpdateEventRequest) -> None:
    """Apply the PATCH fields shared by initiator and admin updates, one by one."""
    event.annotation = apply_update(event.annotation, field_update(data, "annotation"))
    event.description = apply_update(event.description, field_update(data, "description"))
    event.title = apply_update(event.title, field_update(data, "title"))
    event.event_date = apply_update(event.event_date, field_update(data, "event_date"))
    event.paid = apply_update(event.paid, field_update(data, "paid"))
    event.request_moderation = apply_update(event.request_moderation, field_update(data, "request_moderation"))

    category = field_update(data, "category")
    if isinstance(category, SetTo):
        event.category_id = (await _get_category(db, category.value)).id

    location = field_update(data, "location")
    if isinstance(location, SetTo):
        event.lat = location.value.lat
        event.lon = location.value.lon

    limit = field_update(data, "participant_limit")
    if isinstance(limit, SetTo):
        if 0 < limit.value < event.confirmed_requests:
            raise ConflictError(
                f"Participant limit {limit.value} is below the {event.confirmed_requests} already confirmed requests"
            )
        event.participant_limit = limit.value


# --- Initiator (private) API ---

async def create_event(db: AsyncSession, user_id: int, event_data: NewEventDto) -> EventFullDto:
    """Create a new PENDING event with no confirmed participants."""
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User with id={user_id} was not found")
    category = await _get_category(db, event_data.category)

    if event_data.event_date < datetime.now() + MIN_LEAD_TIME_USER:
        raise InvalidArgumentError("Event date must be at least 2 hours in the future")

    event = Event(
        title=event_data.title,
        annotation=event_data.annotation,
        description=event_data.description,
        category_id=category.id,
        initiator_id=user.id,
        event_date=event_data.event_date,
        created_on=datetime.now(),
        lat=event_data.location.lat,
        lon=event_data.location.lon,
        paid=event_data.paid,
        participant_limit=event_data.participant_limit,
        request_moderation=event_data.request_moderation,
        confirmed_requests=0,
        state=EventState.PENDING,
    )
    db.add(event)
    await db.flush()

    event = await load_event(db, event.id)
    logger.info("event_created", event_id=event.id, initiator_id=user_id, limit=event.participant_limit)
    return EventFullDto.from_event(event, 0)


async def get_user_events(
    db: AsyncSession,
    stats: StatsService,
    user_id: int,
    from_: int = 0,
    size: int = 10,
) -> list[EventShortDto]:
    query = paginate(
        _event_query().where(Event.initiator_id == user_id).order_by(Event.event_date.desc()),
        from_,
        size,
    )
    events = list((await db.execute(query)).scalars().all())
    return await to_short_dtos(db, stats, events)


async def get_user_event(db: AsyncSession, stats: StatsService, user_id: int, event_id: int) -> EventFullDto:
    event = await load_event(db, event_id)
    if event.initiator_id != user_id:
        raise NotFoundError(f"Event with id={event_id} was not found")
    return await _to_full_dto(db, stats, event)


async def update_event_by_user(
    db: AsyncSession,
    stats: StatsService,
    user_id: int,
    event_id: int,
    data: UpdateEventUserRequest,
) -> EventFullDto:
    event = await load_event(db, event_id)
    if event.initiator_id != user_id:
        raise NotFoundError(f"Event with id={event_id} was not found")

    if event.state == EventState.PUBLISHED:
        raise ConflictError("Only pending or canceled events can be changed")

    if data.event_date is not None and data.event_date < datetime.now() + MIN_LEAD_TIME_USER:
        raise InvalidArgumentError("Event date must be at least 2 hours in the future")

    if data.state_action == UserStateAction.SEND_TO_REVIEW:
        event.state = EventState.PENDING
    elif data.state_action == UserStateAction.CANCEL_REVIEW:
        event.state = EventState.CANCELED

    await _apply_common_updates(db, event, data)
    await db.flush()

    event = await load_event(db, event_id)
    logger.info("event_updated_by_user", event_id=event_id, state=event.state.value)
    return await _to_full_dto(db, stats, event)


# --- Admin API ---

async def search_events_admin(
    db: AsyncSession,
    stats: StatsService,
    users: Optional[Sequence[int]] = None,
    states: Optional[Sequence[EventState]] = None,
    categories: Optional[Sequence[int]] = None,
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None,
    from_: int = 0,
    size: int = 10,
) -> list[EventFullDto]:
    _check_date_range(range_start, range_end)

    query = _event_query()
    if users:
        query = query.where(Event.initiator_id.in_(list(users)))
    if states:
        query = query.where(Event.state.in_(list(states)))
    if categories:
        query = query.where(Event.category_id.in_(list(categories)))
    if range_start is not None:
        query = query.where(Event.event_date >= range_start)
    if range_end is not None:
        query = query.where(Event.event_date <= range_end)

    query = paginate(query.order_by(Event.id.asc()), from_, size)
    events = list((await db.execute(query)).scalars().all())
    return await to_full_dtos(db, stats, events)


async def update_event_by_admin(
    db: AsyncSession,
    stats: StatsService,
    event_id: int,
    data: UpdateEventAdminRequest,
) -> EventFullDto:
    event = await load_event(db, event_id)

    if data.event_date is not None and data.event_date < datetime.now():
        raise InvalidArgumentError("Event date must be in the future")

    if data.state_action == AdminStateAction.PUBLISH_EVENT:
        if event.state != EventState.PENDING:
            raise ConflictError(
                f"Cannot publish the event because it's not in the right state: {event.state.value}"
            )
        event_date = data.event_date or event.event_date
        if event_date < datetime.now() + MIN_LEAD_TIME_PUBLISH:
            raise ConflictError("Cannot publish the event because the event date is too soon")
        event.state = EventState.PUBLISHED
        event.published_on = datetime.now()
    elif data.state_action == AdminStateAction.REJECT_EVENT:
        if event.state == EventState.PUBLISHED:
            raise ConflictError("Cannot reject the event because it's already published")
        event.state = EventState.CANCELED

    await _apply_common_updates(db, event, data)
    await db.flush()

    event = await load_event(db, event_id)
    logger.info("event_updated_by_admin", event_id=event_id, state=event.state.value)
    return await _to_full_dto(db, stats, event)


# --- Public API ---

async def search_events_public(
    db: AsyncSession,
    stats: StatsService,
    ip: str,
    uri: str = "/events",
    text: Optional[str] = None,
    categories: Optional[Sequence[int]] = None,
    paid: Optional[bool] = None,
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None,
    only_available: bool = False,
    sort: Optional[EventSort] = None,
    from_: int = 0,
    size: int = 10,
) -> list[EventShortDto]:
    """
    Search published events. Without rangeStart only upcoming events are
    returned. VIEWS sorting applies to the requested page.
    """
    start = range_start or datetime.now()
    _check_date_range(start, range_end)

    query = _event_query().where(Event.state == EventState.PUBLISHED, Event.event_date >= start)
    if range_end is not None:
        query = query.where(Event.event_date <= range_end)
    if text and text.strip():
        pattern = f"%{text.strip()}%"
        query = query.where(or_(Event.annotation.ilike(pattern), Event.description.ilike(pattern)))
    if categories:
        query = query.where(Event.category_id.in_(list(categories)))
    if paid is not None:
        query = query.where(Event.paid == paid)
    if only_available:
        query = query.where(
            or_(Event.participant_limit == 0, Event.confirmed_requests < Event.participant_limit)
        )

    if sort == EventSort.EVENT_DATE:
        query = query.order_by(Event.event_date.desc())
    else:
        query = query.order_by(Event.id.asc())

    events = list((await db.execute(paginate(query, from_, size))).scalars().all())
    result = await to_short_dtos(db, stats, events)
    if sort == EventSort.VIEWS:
        result.sort(key=lambda dto: dto.views, reverse=True)

    await stats.save_hit(uri, ip)
    return result


async def get_event_public(db: AsyncSession, stats: StatsService, event_id: int, ip: str) -> EventFullDto:
    """A published event by id; anything else is reported as not found."""
    event = await load_event(db, event_id)
    if event.state != EventState.PUBLISHED:
        raise NotFoundError(f"Event with id={event_id} was not found")

    dto = await _to_full_dto(db, stats, event)
    await stats.save_hit(event_uri(event_id), ip)
    return dto
