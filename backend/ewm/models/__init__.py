from ewm.models.user import User
from ewm.models.category import Category
from ewm.models.event import Event, EventState
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.models.compilation import Compilation, compilation_events
from ewm.models.comment import Comment

__all__ = [
    "User", "Category", "Event", "EventState",
    "ParticipationRequest", "RequestStatus",
    "Compilation", "compilation_events", "Comment",
]
