"""
Participation request endpoints: requester side and initiator moderation.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.db.session import get_db
from ewm.models.request import RequestStatus
from ewm.schemas.request import (
    EventRequestStatusUpdateRequest,
    EventRequestStatusUpdateResult,
    ParticipationRequestDto,
)
from ewm.services import request_service

router = APIRouter(prefix="/users/{user_id}", tags=["Private: Requests"])


@router.get("/requests", response_model=list[ParticipationRequestDto])
async def list_user_requests_endpoint(user_id: int, db: AsyncSession = Depends(get_db)):
    requests = await request_service.get_user_requests(db, user_id)
    return [ParticipationRequestDto.from_request(r) for r in requests]


@router.post(
    "/requests",
    response_model=ParticipationRequestDto,
    status_code=status.HTTP_201_CREATED,
)
async def create_request_endpoint(
    user_id: int,
    event_id: int = Query(..., alias="eventId"),
    db: AsyncSession = Depends(get_db),
):
    """
    Request to participate in a published event.

    Returns 409 Conflict when the event is full, unpublished, owned by the
    requester, or already requested.
    """
    request = await request_service.create_request(db, user_id, event_id)
    return ParticipationRequestDto.from_request(request)


@router.patch("/requests/{request_id}/cancel", response_model=ParticipationRequestDto)
async def cancel_request_endpoint(
    user_id: int,
    request_id: int,
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.cancel_request(db, user_id, request_id)
    return ParticipationRequestDto.from_request(request)


@router.get("/events/{event_id}/requests", response_model=list[ParticipationRequestDto])
async def list_event_requests_endpoint(
    user_id: int,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    requests = await request_service.get_event_requests(db, user_id, event_id)
    return [ParticipationRequestDto.from_request(r) for r in requests]


@router.patch("/events/{event_id}/requests", response_model=EventRequestStatusUpdateResult)
async def moderate_requests_endpoint(
    user_id: int,
    event_id: int,
    data: EventRequestStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    confirmed, rejected = await request_service.moderate_requests(
        db, user_id, event_id, data.request_ids, RequestStatus(data.status)
    )
    return EventRequestStatusUpdateResult(
        confirmed_requests=[ParticipationRequestDto.from_request(r) for r in confirmed],
        rejected_requests=[ParticipationRequestDto.from_request(r) for r in rejected],
    )
