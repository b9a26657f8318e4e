from ewm.schemas.user import NewUserRequest, UserDto, UserShortDto
from ewm.schemas.category import NewCategoryDto, CategoryDto
from ewm.schemas.event import (
    NewEventDto, UpdateEventUserRequest, UpdateEventAdminRequest,
    EventFullDto, EventShortDto, LocationDto, CapacityReconciliation,
)
from ewm.schemas.request import (
    ParticipationRequestDto, EventRequestStatusUpdateRequest, EventRequestStatusUpdateResult,
)
from ewm.schemas.compilation import NewCompilationDto, UpdateCompilationRequest, CompilationDto
from ewm.schemas.comment import NewCommentDto, CommentDto
from ewm.schemas.error import ApiError

__all__ = [
    "NewUserRequest", "UserDto", "UserShortDto",
    "NewCategoryDto", "CategoryDto",
    "NewEventDto", "UpdateEventUserRequest", "UpdateEventAdminRequest",
    "EventFullDto", "EventShortDto", "LocationDto", "CapacityReconciliation",
    "ParticipationRequestDto", "EventRequestStatusUpdateRequest", "EventRequestStatusUpdateResult",
    "NewCompilationDto", "UpdateCompilationRequest", "CompilationDto",
    "NewCommentDto", "CommentDto",
    "ApiError",
]
