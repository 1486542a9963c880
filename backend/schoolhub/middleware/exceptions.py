"""Error types raised by the onboarding services and the handlers that
turn them (and framework errors) into one JSON envelope:

    {"error": {"code": "...", "message": "...", "details": {...}}}

`details` is only present when the error carries some.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class SchoolHubException(Exception):
    """Base class for errors that map straight to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details
        super().__init__(message)


class BusinessLogicError(SchoolHubException):
    """A request that is well-formed but not allowed in the current state."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "BUSINESS_LOGIC_ERROR"


class ResourceNotFoundError(SchoolHubException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: str, **kwargs):
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}", **kwargs)


# ── Onboarding workflow errors ───────────────────────────────

class UserNotFoundError(ResourceNotFoundError):
    """Onboarding was requested for a user that does not exist."""

    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class OnboardingNotFoundError(ResourceNotFoundError):
    """The user has no onboarding record yet."""

    error_code = "ONBOARDING_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__("Onboarding record for user", user_id)


class InvalidOnboardingStateError(BusinessLogicError):
    """The record's current status does not permit the requested operation."""

    error_code = "INVALID_ONBOARDING_STATE"


class PrerequisiteNotMetError(BusinessLogicError):
    """A step was submitted before all of its prerequisite steps."""

    error_code = "PREREQUISITE_NOT_MET"

    def __init__(self, step: str, missing: list[str]):
        self.step = step
        self.missing = missing
        super().__init__(
            f"Cannot proceed to step {step}. Complete these first: {', '.join(missing)}",
            details={"step": step, "missing_steps": missing},
        )


# ── Handlers ─────────────────────────────────────────────────

def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def schoolhub_exception_handler(
    request: Request,
    exc: SchoolHubException,
) -> JSONResponse:
    logger.warning(
        "%s %s -> %s: %s",
        request.method, request.url.path, exc.error_code, exc.message,
    )
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> HTTP %s: %s", request.method, request.url.path,
                     exc.status_code, exc.detail)

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Flatten pydantic errors into {field, message, type} entries."""
    logger.warning("%s %s -> validation error", request.method, request.url.path)

    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    # Internal details stay in the log
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    app.add_exception_handler(SchoolHubException, schoolhub_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
