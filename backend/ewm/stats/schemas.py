"""
Wire schemas shared by the stats server and the main-service stats client.
"""

from pydantic import BaseModel, ConfigDict, Field

from ewm.core.dates import EwmDateTime


class EndpointHitDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    app: str = Field(..., min_length=1, max_length=255)
    uri: str = Field(..., min_length=1, max_length=512)
    ip: str = Field(..., min_length=1, max_length=45)
    timestamp: EwmDateTime


class ViewStatsDto(BaseModel):
    app: str
    uri: str
    hits: int
