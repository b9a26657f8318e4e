"""
Event compilations: curated, optionally pinned, lists of events.
"""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.pagination import paginate
from ewm.core.patch import SetTo, apply_update, field_update
from ewm.models.compilation import Compilation
from ewm.models.event import Event
from ewm.schemas.compilation import CompilationDto, NewCompilationDto, UpdateCompilationRequest
from ewm.services.event_service import to_short_dtos
from ewm.services.stats_service import StatsService

logger = get_logger(__name__)


def _compilation_query():
    return select(Compilation).options(
        selectinload(Compilation.events).selectinload(Event.category),
        selectinload(Compilation.events).selectinload(Event.initiator),
    )


async def _load(db: AsyncSession, compilation_id: int) -> Compilation:
    result = await db.execute(
        _compilation_query()
        .where(Compilation.id == compilation_id)
        .execution_options(populate_existing=True)
    )
    compilation = result.scalar_one_or_none()
    if not compilation:
        raise NotFoundError(f"Compilation with id={compilation_id} was not found")
    return compilation


async def _find_events(db: AsyncSession, event_ids: Sequence[int]) -> list[Event]:
    if not event_ids:
        return []
    result = await db.execute(select(Event).where(Event.id.in_(list(event_ids))))
    return list(result.scalars().all())


async def _ensure_title_free(db: AsyncSession, title: str, exclude_id: int | None = None) -> None:
    query = select(Compilation.id).where(Compilation.title == title)
    if exclude_id is not None:
        query = query.where(Compilation.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError(f"Compilation title '{title}' is already taken")


async def _to_dto(db: AsyncSession, stats: StatsService, compilation: Compilation) -> CompilationDto:
    events = sorted(compilation.events, key=lambda e: e.id)
    return CompilationDto(
        id=compilation.id,
        events=await to_short_dtos(db, stats, events),
        pinned=compilation.pinned,
        title=compilation.title,
    )


async def create_compilation(db: AsyncSession, stats: StatsService, data: NewCompilationDto) -> CompilationDto:
    await _ensure_title_free(db, data.title)

    compilation = Compilation(
        title=data.title,
        pinned=data.pinned,
        events=await _find_events(db, data.events),
    )
    db.add(compilation)
    await db.flush()

    logger.info("compilation_created", compilation_id=compilation.id, events=len(data.events))
    return await _to_dto(db, stats, await _load(db, compilation.id))


async def update_compilation(
    db: AsyncSession,
    stats: StatsService,
    compilation_id: int,
    data: UpdateCompilationRequest,
) -> CompilationDto:
    compilation = await _load(db, compilation_id)

    events = field_update(data, "events")
    if isinstance(events, SetTo):
        compilation.events = await _find_events(db, events.value)

    compilation.pinned = apply_update(compilation.pinned, field_update(data, "pinned"))

    title = field_update(data, "title")
    if isinstance(title, SetTo):
        await _ensure_title_free(db, title.value, exclude_id=compilation_id)
        compilation.title = title.value

    await db.flush()
    return await _to_dto(db, stats, await _load(db, compilation_id))


async def delete_compilation(db: AsyncSession, compilation_id: int) -> None:
    compilation = await _load(db, compilation_id)
    await db.delete(compilation)
    await db.flush()
    logger.info("compilation_deleted", compilation_id=compilation_id)


async def get_compilation(db: AsyncSession, stats: StatsService, compilation_id: int) -> CompilationDto:
    return await _to_dto(db, stats, await _load(db, compilation_id))


async def get_compilations(
    db: AsyncSession,
    stats: StatsService,
    pinned: Optional[bool] = None,
    from_: int = 0,
    size: int = 10,
) -> list[CompilationDto]:
    query = _compilation_query().order_by(Compilation.id.asc())
    if pinned is not None:
        query = query.where(Compilation.pinned == pinned)

    compilations = (await db.execute(paginate(query, from_, size))).scalars().all()
    return [await _to_dto(db, stats, c) for c in compilations]
