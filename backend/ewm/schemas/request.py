"""
Pydantic schemas for participation requests and batch moderation.
"""

from typing import Literal

from pydantic import Field

from ewm.core.dates import EwmDateTime
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.schemas.common import CamelModel


class ParticipationRequestDto(CamelModel):
    id: int
    created: EwmDateTime
    event: int
    requester: int
    status: RequestStatus

    @classmethod
    def from_request(cls, request: ParticipationRequest) -> "ParticipationRequestDto":
        return cls(
            id=request.id,
            created=request.created,
            event=request.event_id,
            requester=request.requester_id,
            status=request.status,
        )


class EventRequestStatusUpdateRequest(CamelModel):
    request_ids: list[int] = Field(..., min_length=1)
    status: Literal["CONFIRMED", "REJECTED"]


class EventRequestStatusUpdateResult(CamelModel):
    confirmed_requests: list[ParticipationRequestDto] = []
    rejected_requests: list[ParticipationRequestDto] = []
