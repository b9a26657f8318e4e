"""
Domain exceptions raised by the service layer.

Services never build HTTP responses themselves; the API layer translates
these into status codes and the ApiError body (see ewm.api.errors).
"""


class EwmError(Exception):
    status_code: int = 500
    status: str = "INTERNAL_SERVER_ERROR"
    reason: str = "Internal server error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EwmError):
    """Entity is missing, or its existence is deliberately hidden from the caller."""

    status_code = 404
    status = "NOT_FOUND"
    reason = "The required object was not found."


class ConflictError(EwmError):
    """Business rule violation: capacity, state, duplicates."""

    status_code = 409
    status = "CONFLICT"
    reason = "For the requested operation the conditions are not met."


class InvalidArgumentError(EwmError):
    """Malformed input: dates, pagination, enum values."""

    status_code = 400
    status = "BAD_REQUEST"
    reason = "Incorrectly made request."
