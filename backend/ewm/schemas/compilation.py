from typing import Optional

from pydantic import Field

from ewm.schemas.common import CamelModel
from ewm.schemas.event import EventShortDto


class NewCompilationDto(CamelModel):
    events: list[int] = []
    pinned: bool = False
    title: str = Field(..., min_length=1, max_length=50)


class UpdateCompilationRequest(CamelModel):
    events: Optional[list[int]] = None
    pinned: Optional[bool] = None
    title: Optional[str] = Field(None, min_length=1, max_length=50)


class CompilationDto(CamelModel):
    id: int
    events: list[EventShortDto] = []
    pinned: bool
    title: str
