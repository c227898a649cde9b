import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from doctrack.core.exceptions import (
    AllocationCollision,
    CollaboratorUnavailable,
    InvalidTransition,
    StaleSnapshot,
    TrackingError,
)

logger = logging.getLogger(__name__)

_TRACKING_STATUS = (
    (InvalidTransition, 409),
    (StaleSnapshot, 409),
    (AllocationCollision, 409),
    (CollaboratorUnavailable, 503),
)


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def tracking_status_code(exc: TrackingError) -> int:
    for exc_type, status_code in _TRACKING_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 400


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(TrackingError)
    async def tracking_error_handler(request: Request, exc: TrackingError):
        return JSONResponse(
            status_code=tracking_status_code(exc),
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # ctx may hold raw exception objects, which JSON can't encode.
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
