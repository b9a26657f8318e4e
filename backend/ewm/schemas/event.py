"""
Pydantic schemas for event-related request/response validation.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from ewm.core.dates import EwmDateTime
from ewm.models.event import Event, EventState
from ewm.schemas.category import CategoryDto
from ewm.schemas.common import CamelModel
from ewm.schemas.user import UserShortDto


class LocationDto(CamelModel):
    lat: float
    lon: float


class UserStateAction(str, Enum):
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_REVIEW = "CANCEL_REVIEW"


class AdminStateAction(str, Enum):
    PUBLISH_EVENT = "PUBLISH_EVENT"
    REJECT_EVENT = "REJECT_EVENT"


class EventSort(str, Enum):
    EVENT_DATE = "EVENT_DATE"
    VIEWS = "VIEWS"


class NewEventDto(CamelModel):
    annotation: str = Field(..., min_length=20, max_length=2000)
    category: int
    description: str = Field(..., min_length=20, max_length=7000)
    event_date: EwmDateTime
    location: LocationDto
    paid: bool = False
    participant_limit: int = Field(0, ge=0)
    request_moderation: bool = True
    title: str = Field(..., min_length=3, max_length=120)


class UpdateEventRequest(CamelModel):
    """Fields shared by the initiator and admin PATCH bodies. Absent means keep."""

    annotation: Optional[str] = Field(None, min_length=20, max_length=2000)
    category: Optional[int] = None
    description: Optional[str] = Field(None, min_length=20, max_length=7000)
    event_date: Optional[EwmDateTime] = None
    location: Optional[LocationDto] = None
    paid: Optional[bool] = None
    participant_limit: Optional[int] = Field(None, ge=0)
    request_moderation: Optional[bool] = None
    title: Optional[str] = Field(None, min_length=3, max_length=120)


class UpdateEventUserRequest(UpdateEventRequest):
    state_action: Optional[UserStateAction] = None


class UpdateEventAdminRequest(UpdateEventRequest):
    state_action: Optional[AdminStateAction] = None


class EventShortDto(CamelModel):
    id: int
    annotation: str
    category: CategoryDto
    confirmed_requests: int
    event_date: EwmDateTime
    initiator: UserShortDto
    paid: bool
    title: str
    views: int = 0

    @classmethod
    def from_event(cls, event: Event, views: int = 0) -> "EventShortDto":
        return cls(
            id=event.id,
            annotation=event.annotation,
            category=CategoryDto.model_validate(event.category),
            confirmed_requests=event.confirmed_requests,
            event_date=event.event_date,
            initiator=UserShortDto.model_validate(event.initiator),
            paid=event.paid,
            title=event.title,
            views=views,
        )


class EventFullDto(EventShortDto):
    created_on: Optional[EwmDateTime] = None
    description: Optional[str] = None
    location: LocationDto
    participant_limit: int
    published_on: Optional[EwmDateTime] = None
    request_moderation: bool
    state: EventState

    @classmethod
    def from_event(cls, event: Event, views: int = 0) -> "EventFullDto":
        return cls(
            id=event.id,
            annotation=event.annotation,
            category=CategoryDto.model_validate(event.category),
            confirmed_requests=event.confirmed_requests,
            created_on=event.created_on,
            description=event.description,
            event_date=event.event_date,
            initiator=UserShortDto.model_validate(event.initiator),
            location=LocationDto(lat=event.lat, lon=event.lon),
            paid=event.paid,
            participant_limit=event.participant_limit,
            published_on=event.published_on,
            request_moderation=event.request_moderation,
            state=event.state,
            title=event.title,
            views=views,
        )


class CapacityReconciliation(CamelModel):
    event_id: int
    recorded: int
    actual: int
    corrected: bool
