"""
Translate domain and framework exceptions into ApiError responses.

    NotFoundError          -> 404
    ConflictError          -> 409
    InvalidArgumentError   -> 400
    RequestValidationError -> 400
    IntegrityError         -> 409
    anything else          -> 500
"""

from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from ewm.core.exceptions import EwmError, InvalidArgumentError
from ewm.core.logging import get_logger
from ewm.schemas.error import ApiError

logger = get_logger(__name__)


def _error_response(
    status_code: int,
    error_status: str,
    reason: str,
    message: str,
    exc: Exception,
) -> JSONResponse:
    body = ApiError(
        errors=[repr(exc)],
        message=message,
        reason=reason,
        status=error_status,
        timestamp=datetime.now(),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True, mode="json")),
    )


async def ewm_error_handler(request: Request, exc: EwmError) -> JSONResponse:
    logger.warning(
        "request_rejected",
        status=exc.status,
        message=exc.message,
    )
    return _error_response(exc.status_code, exc.status, exc.reason, exc.message, exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"Field: {'.'.join(str(p) for p in err.get('loc', ()))}. Error: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning("request_validation_failed", message=message)
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        InvalidArgumentError.status,
        InvalidArgumentError.reason,
        message,
        exc,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity_violation", error=str(exc.orig))
    return _error_response(
        status.HTTP_409_CONFLICT,
        "CONFLICT",
        "Integrity constraint has been violated.",
        "Integrity constraint has been violated.",
        exc,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", error=str(exc), exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "Internal server error",
        "Internal server error occurred",
        exc,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EwmError, ewm_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
