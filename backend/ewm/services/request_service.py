"""
Participation request ledger.

Every mutating operation here is one unit of work wrapped in
capacity_service.run_with_retry: it reads the event and the requests it
needs, validates, moves request statuses and the event counter together,
and on a concurrent modification is rolled back and re-run from a fresh read.

Request status changes are guarded UPDATEs on the prior status, so two
moderators cannot both move the same PENDING request.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.metrics import record_request_operation
from ewm.models.event import Event, EventState
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.models.user import User
from ewm.services import capacity_service
from ewm.services.capacity_service import ConcurrentModification

logger = get_logger(__name__)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User with id={user_id} was not found")
    return user


async def _get_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id, populate_existing=True)
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found")
    return event


async def _transition(
    db: AsyncSession,
    request_ids: Sequence[int],
    from_status: RequestStatus,
    to_status: RequestStatus,
) -> None:
    """Move requests from one status to another; all of them or none."""
    if not request_ids:
        return
    result = await db.execute(
        update(ParticipationRequest)
        .where(
            ParticipationRequest.id.in_(list(request_ids)),
            ParticipationRequest.status == from_status,
        )
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != len(request_ids):
        raise ConcurrentModification(
            f"Requests {list(request_ids)} are no longer {from_status.value}"
        )


async def _load_requests(db: AsyncSession, request_ids: Sequence[int]) -> list[ParticipationRequest]:
    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.id.in_(list(request_ids)))
        .execution_options(populate_existing=True)
    )
    by_id = {r.id: r for r in result.scalars().all()}
    return [by_id[rid] for rid in request_ids if rid in by_id]


async def get_user_requests(db: AsyncSession, user_id: int) -> list[ParticipationRequest]:
    """All requests made by a user, oldest first."""
    await _get_user(db, user_id)
    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.requester_id == user_id)
        .order_by(ParticipationRequest.created.asc(), ParticipationRequest.id.asc())
    )
    return list(result.scalars().all())


async def get_event_requests(db: AsyncSession, initiator_id: int, event_id: int) -> list[ParticipationRequest]:
    """Requests for an event, visible only to its initiator."""
    event = await _get_event(db, event_id)
    if event.initiator_id != initiator_id:
        raise NotFoundError(f"Event with id={event_id} was not found")

    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.event_id == event_id)
        .order_by(ParticipationRequest.id.asc())
    )
    return list(result.scalars().all())


async def create_request(db: AsyncSession, requester_id: int, event_id: int) -> ParticipationRequest:
    """
    Create a participation request.

    Auto-confirmed (and counted) when the event has no moderation or no
    participant limit; otherwise left PENDING for the initiator.
    """

    async def attempt() -> ParticipationRequest:
        await _get_user(db, requester_id)
        event = await _get_event(db, event_id)

        if event.initiator_id == requester_id:
            raise ConflictError("The initiator cannot add a request to participate in their own event")

        if event.state != EventState.PUBLISHED:
            raise ConflictError("You cannot participate in an unpublished event")

        if event.is_full:
            raise ConflictError("The participant limit has been reached")

        existing = await db.execute(
            select(ParticipationRequest.id).where(
                ParticipationRequest.event_id == event_id,
                ParticipationRequest.requester_id == requester_id,
                ParticipationRequest.status != RequestStatus.CANCELED,
            )
        )
        if existing.first() is not None:
            raise ConflictError("You cannot add a repeat request")

        status = RequestStatus.PENDING if event.requires_moderation else RequestStatus.CONFIRMED
        if status == RequestStatus.CONFIRMED:
            await capacity_service.increment_confirmed(db, event, 1, check_version=False)

        request = ParticipationRequest(
            event_id=event_id,
            requester_id=requester_id,
            status=status,
            created=datetime.now(),
        )
        db.add(request)
        await db.flush()
        await db.refresh(request)
        return request

    try:
        request = await capacity_service.run_with_retry(db, "create_request", attempt)
    except ConflictError:
        record_request_operation("create", "conflict")
        raise
    except NotFoundError:
        record_request_operation("create", "not_found")
        raise

    record_request_operation("create", "success")
    logger.info(
        "request_created",
        request_id=request.id,
        event_id=event_id,
        requester_id=requester_id,
        status=request.status.value,
    )
    return request


async def cancel_request(db: AsyncSession, requester_id: int, request_id: int) -> ParticipationRequest:
    """
    Cancel the requester's own request. Someone else's request is reported
    as not found. Cancelling a CONFIRMED request releases its slot.
    """

    async def attempt() -> ParticipationRequest:
        request = await db.get(ParticipationRequest, request_id, populate_existing=True)
        if not request or request.requester_id != requester_id:
            raise NotFoundError(f"Request with id={request_id} was not found")

        if request.status == RequestStatus.CANCELED:
            return request

        if request.status == RequestStatus.REJECTED:
            raise ConflictError("A rejected request cannot be canceled")

        prior = request.status
        await _transition(db, [request.id], prior, RequestStatus.CANCELED)
        if prior == RequestStatus.CONFIRMED:
            await capacity_service.decrement_confirmed(db, request.event_id, 1)

        await db.refresh(request)
        return request

    try:
        request = await capacity_service.run_with_retry(db, "cancel_request", attempt)
    except ConflictError:
        record_request_operation("cancel", "conflict")
        raise
    except NotFoundError:
        record_request_operation("cancel", "not_found")
        raise

    record_request_operation("cancel", "success")
    logger.info("request_canceled", request_id=request.id, requester_id=requester_id)
    return request


async def moderate_requests(
    db: AsyncSession,
    initiator_id: int,
    event_id: int,
    request_ids: Sequence[int],
    target_status: RequestStatus,
) -> tuple[list[ParticipationRequest], list[ParticipationRequest]]:
    """
    Confirm or reject a batch of PENDING requests for one event.

    Ids are processed in input order. When confirming, requests beyond the
    remaining capacity are rejected instead: partial confirmation is a normal
    outcome. Returns (confirmed, rejected).
    """
    if target_status not in (RequestStatus.CONFIRMED, RequestStatus.REJECTED):
        raise ConflictError(f"Invalid status value: {target_status.value}")

    ordered_ids = list(dict.fromkeys(request_ids))

    async def attempt() -> tuple[list[ParticipationRequest], list[ParticipationRequest]]:
        event = await _get_event(db, event_id)
        if event.initiator_id != initiator_id:
            raise NotFoundError(f"Event with id={event_id} was not found")

        if not event.requires_moderation:
            raise ConflictError("Event does not require moderation")

        requests = await _load_requests(db, ordered_ids)
        if len(requests) != len(ordered_ids):
            found = {r.id for r in requests}
            missing = [rid for rid in ordered_ids if rid not in found]
            raise NotFoundError(f"Requests with ids={missing} were not found")

        for request in requests:
            if request.event_id != event_id:
                raise ConflictError(f"Request with id={request.id} does not belong to event {event_id}")
            if request.status != RequestStatus.PENDING:
                raise ConflictError("Request must have status PENDING")

        if target_status == RequestStatus.CONFIRMED:
            available = event.remaining_capacity
            if available <= 0:
                raise ConflictError("The participant limit has been reached")
            to_confirm = requests[:available]
            to_reject = requests[available:]
        else:
            to_confirm = []
            to_reject = requests

        await _transition(db, [r.id for r in to_confirm], RequestStatus.PENDING, RequestStatus.CONFIRMED)
        await _transition(db, [r.id for r in to_reject], RequestStatus.PENDING, RequestStatus.REJECTED)
        await capacity_service.increment_confirmed(db, event, len(to_confirm))

        for request in requests:
            await db.refresh(request)
        return to_confirm, to_reject

    try:
        confirmed, rejected = await capacity_service.run_with_retry(db, "moderate_requests", attempt)
    except ConflictError:
        record_request_operation("moderate", "conflict")
        raise
    except NotFoundError:
        record_request_operation("moderate", "not_found")
        raise

    record_request_operation("moderate", "success")
    logger.info(
        "requests_moderated",
        event_id=event_id,
        target_status=target_status.value,
        confirmed=len(confirmed),
        rejected=len(rejected),
    )
    return confirmed, rejected
