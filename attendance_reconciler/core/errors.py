"""
Central error handling for the attendance reconciliation service

Engine services raise EngineError subclasses; the handlers below render them
(and FastAPI's own errors) in one JSON envelope.
"""
import logging
import traceback

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from attendance_reconciler.core.config import settings

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Base class for errors surfaced synchronously to the caller. Never retried automatically."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInput(EngineError):
    """Malformed date/time or missing required field; rejected before any write."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDateFormat(InvalidInput):
    pass


class MissingApprover(InvalidInput):
    pass


class Forbidden(EngineError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(EngineError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(EngineError):
    """Duplicate request or state-guard violation."""

    status_code = status.HTTP_409_CONFLICT


class DuplicateRequest(Conflict):
    pass


class InvalidState(Conflict):
    pass


class SyncInProgress(Conflict):
    pass


class UpstreamUnavailable(EngineError):
    """Biometric terminal unreachable; the next scheduled tick retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(request: Request, status_code: int, detail) -> dict:
    return {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }


async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    """
    Handle EngineError with the same JSON envelope as HTTPException

    Args:
        request: FastAPI request object
        exc: EngineError instance

    Returns:
        JSONResponse with error details
    """
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    body = _error_body(request, exc.status_code, exc.detail)
    body["error_type"] = type(exc).__name__
    return JSONResponse(status_code=exc.status_code, content=body)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(request, 422, "Validation error: Invalid request data"),
        )

    # ctx may hold exception instances (e.g. ValueError) that are not JSON serializable
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    body = _error_body(request, 422, "Validation error")
    body["errors"] = errors
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )

    body = _error_body(request, 500, str(exc))
    body["traceback"] = traceback.format_exc() if settings.APP_ENV == "local" else None
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
