"""Application errors and the centralized error responder.

Every handler lets failures propagate. The responders registered in
``main.create_app`` turn them into the JSend-style envelope::

    {"status": "fail" | "error", "message": "..."}

Outside production the envelope also carries the error details and the
stack trace.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from .config import settings

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """
    Base class for operational errors.

    Operational errors are expected failures (bad input, missing records)
    whose message is safe to send to the client.
    """

    is_operational = True

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.status = "fail" if 400 <= status_code < 500 else "error"
        self.details = details or {}
        super().__init__(status_code=status_code, detail=message, headers=headers)

    def to_envelope(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


class NotFoundError(AppError):
    """Raised when an identifier has no matching document."""

    def __init__(
        self,
        resource_type: str = "document",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"No {resource_type} found with that ID"
            if resource_id:
                message += f": {resource_id}"
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class ValidationError(AppError):
    """Raised when a document violates a schema rule."""

    def __init__(self, message: str = "Invalid input data.", errors: Optional[list] = None):
        details = {"errors": errors} if errors else None
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class DuplicateKeyError(AppError):
    """Raised when a unique constraint is violated."""

    def __init__(self, field: Optional[str] = None, value: Any = None):
        message = "Duplicate field value"
        if field:
            message += f" for {field}"
            if value is not None:
                message += f": {value!r}"
        message += ". Please use another value!"
        super().__init__(message, status.HTTP_400_BAD_REQUEST, {"field": field} if field else None)


class BadRequestError(AppError):
    """Raised for malformed request parameters."""

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(AppError):
    """Raised when a document changed between being read and being written."""

    def __init__(self, message: str = "The document was modified by another request. Please retry."):
        super().__init__(message, status.HTTP_409_CONFLICT)


class AuthenticationError(AppError):
    """Raised when a bearer token cannot be verified."""

    def __init__(self, message: str = "Invalid token. Please log in again!"):
        super().__init__(
            message,
            status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


def _with_debug_info(body: Dict[str, Any], exc: BaseException, details: Any = None) -> Dict[str, Any]:
    """Attach error details and a stack trace outside production."""
    if settings.is_production:
        return body
    body["error"] = {"type": type(exc).__name__, **(details or {})}
    body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def _format_validation_errors(errors: list[dict]) -> str:
    # Path parameters that fail to parse mirror a cast failure on the id
    for error in errors:
        loc = error.get("loc", ())
        if loc and loc[0] == "path":
            return f"Invalid {loc[-1]}: {error.get('input')}"

    messages = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = error.get("msg", "invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return "Invalid input data. " + ". ".join(messages)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Exception handler for operational application errors.

    Args:
        request: FastAPI request object
        exc: Application error

    Returns:
        JSONResponse: Error envelope
    """
    body = _with_debug_info(exc.to_envelope(), exc, exc.details)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request validation failures to a 400 fail envelope."""
    errors = exc.errors()
    body = {"status": "fail", "message": _format_validation_errors(errors)}
    details = {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]}
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_with_debug_info(body, exc, details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Map database constraint violations that escaped the services."""
    logger.warning(
        "Unmapped integrity error",
        extra={"path": request.url.path, "error": str(exc.orig)}
    )
    error = DuplicateKeyError()
    body = _with_debug_info(error.to_envelope(), exc)
    return JSONResponse(status_code=error.status_code, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler for programming or unknown errors.

    The message never leaks internals; details are attached only outside
    production.
    """
    logger.error(
        "Unhandled error while processing request",
        extra={"path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )
    body = {"status": "error", "message": "Something went very wrong!"}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_with_debug_info(body, exc, {"detail": str(exc)}),
    )
