from ewm.core.dates import EwmDateTime
from ewm.schemas.common import CamelModel


class ApiError(CamelModel):
    errors: list[str] = []
    message: str
    reason: str
    status: str
    timestamp: EwmDateTime
