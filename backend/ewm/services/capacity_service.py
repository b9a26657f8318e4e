"""
Capacity accounting for event participation.

INVARIANT
=========
  events.confirmed_requests == COUNT(participation_requests WHERE status = 'CONFIRMED')

The counter is denormalized on the event row and changed only here, always in
the same transaction as the request status change it mirrors. It is never
recomputed from a scan on the request path; count_confirmed() and
reconcile() re-derive it for audits and self-healing.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two moderators (or two auto-confirmed requesters) race for the last slot.
  Both read confirmed_requests = limit - 1, both pass the capacity check,
  both increment. Result: confirmed_requests > participant_limit.

Solution:
  Every counter change bumps events.version. Increments run as

    UPDATE events
       SET confirmed_requests = confirmed_requests + :n, version = version + 1
     WHERE id = :event_id
       AND (participant_limit = 0 OR confirmed_requests + :n <= participant_limit)
       [AND version = :seen_version]      -- batch moderation only

  Zero affected rows means another transaction changed the event since we
  read it, or the event is full. The caller's whole unit of work is rolled
  back and re-run from a fresh read after a short jittered backoff
  (run_with_retry), so every business check is evaluated against current
  state. The check constraint on events is the final safety net.
"""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.config import get_settings
from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.metrics import capacity_version_conflicts, record_reconciliation
from ewm.models.event import Event
from ewm.models.request import ParticipationRequest, RequestStatus

logger = get_logger(__name__)

T = TypeVar("T")


def _backoff(base: float, attempt_no: int) -> float:
    """Exponential backoff with full jitter."""
    return random.uniform(0, base * (2 ** (attempt_no - 1)))


class ConcurrentModification(Exception):
    """A guarded UPDATE matched no row: state changed since it was read."""


async def increment_confirmed(
    db: AsyncSession,
    event: Event,
    count: int = 1,
    check_version: bool = True,
) -> None:
    """
    Add `count` confirmed participants to `event`, guarded by the capacity
    bound and, with check_version, by the version the caller read.
    Raises ConcurrentModification.

    A single auto-confirmed create only depends on the capacity bound, which
    the database re-evaluates against the locked row, so it passes
    check_version=False. Batch moderation partitions requests by the
    remaining capacity it read and keeps the version guard.
    """
    if count <= 0:
        return

    conditions = [
        Event.id == event.id,
        or_(
            Event.participant_limit == 0,
            Event.confirmed_requests + count <= Event.participant_limit,
        ),
    ]
    if check_version:
        conditions.append(Event.version == event.version)

    result = await db.execute(
        update(Event)
        .where(*conditions)
        .values(
            confirmed_requests=Event.confirmed_requests + count,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConcurrentModification(f"Event {event.id} changed during capacity update")

    await db.refresh(event)
    logger.debug("capacity_incremented", event_id=event.id, count=count, confirmed=event.confirmed_requests)


async def decrement_confirmed(db: AsyncSession, event_id: int, count: int = 1) -> None:
    """Release `count` confirmed slots. Atomic in SQL, so no version guard is needed."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.confirmed_requests >= count)
        .values(
            confirmed_requests=Event.confirmed_requests - count,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Counter would go negative: it has drifted from the ledger
        logger.error("capacity_counter_underflow", event_id=event_id, count=count)
        raise ConflictError(f"Confirmed request counter for event {event_id} is inconsistent")

    logger.debug("capacity_decremented", event_id=event_id, count=count)


async def run_with_retry(
    db: AsyncSession,
    operation: str,
    attempt: Callable[[], Awaitable[T]],
) -> T:
    """
    Run one unit of work, retrying it from scratch on ConcurrentModification.
    `attempt` must re-read every row it depends on.
    """
    settings = get_settings()
    max_attempts = settings.CAPACITY_MAX_RETRIES
    for attempt_no in range(1, max_attempts + 1):
        try:
            return await attempt()
        except ConcurrentModification as e:
            capacity_version_conflicts.inc()
            logger.info(
                "capacity_version_conflict",
                operation=operation,
                attempt=attempt_no,
                reason=str(e),
            )
            # Discard partial writes and cached state so the next read is fresh
            await db.rollback()
            if attempt_no < max_attempts:
                await asyncio.sleep(_backoff(settings.CAPACITY_RETRY_BACKOFF, attempt_no))

    raise ConflictError("The request could not be completed due to high demand. Please try again.")


async def count_confirmed(db: AsyncSession, event_id: int) -> int:
    """Re-derive the confirmed count from the ledger (audit, not the request path)."""
    result = await db.execute(
        select(func.count(ParticipationRequest.id)).where(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == RequestStatus.CONFIRMED,
        )
    )
    return int(result.scalar() or 0)


async def reconcile(db: AsyncSession, event_id: int) -> dict:
    """
    Compare the stored counter with the ledger and rewrite it if they differ.
    Returns {"event_id", "recorded", "actual", "corrected"}.
    """
    event = await db.get(Event, event_id, populate_existing=True)
    if event is None:
        raise NotFoundError(f"Event with id={event_id} was not found")

    recorded = event.confirmed_requests
    actual = await count_confirmed(db, event_id)
    corrected = recorded != actual

    if corrected:
        if event.participant_limit > 0 and actual > event.participant_limit:
            logger.error(
                "capacity_overbooked",
                event_id=event_id,
                actual=actual,
                limit=event.participant_limit,
            )
            raise ConflictError(
                f"Event {event_id} has {actual} confirmed requests, above its limit of {event.participant_limit}"
            )
        await db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(confirmed_requests=actual, version=Event.version + 1)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(event)
        logger.warning("capacity_reconciled", event_id=event_id, recorded=recorded, actual=actual)

    record_reconciliation(corrected)
    return {"event_id": event_id, "recorded": recorded, "actual": actual, "corrected": corrected}
