"""Domain error taxonomy and its mapping onto HTTP responses.

Learn: Services raise these instead of HTTPException so the same
business rules can be called from tests or scripts without a request
in flight. One exception handler turns every DogApiError into a
`{"error": message}` JSON body with the matching status code.

Nothing internal (stack traces, SQL, file paths) ever reaches the
client: StorageError carries a fixed message and the catch-all
handler answers "Internal server error".
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class DogApiError(Exception):
    """Base class for errors that map to a client-visible response."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)


class ValidationError(DogApiError):
    """Missing or malformed input."""

    status_code = 400
    message = "Invalid request."


class Unauthenticated(DogApiError):
    """No usable bearer credentials on the request."""

    status_code = 401
    message = "Please log in first."


class InvalidCredentials(DogApiError):
    status_code = 401
    message = "Invalid credentials"


class UserNotFound(InvalidCredentials):
    message = "User not found."


class Forbidden(DogApiError):
    """Identity is known but not allowed to do this."""

    status_code = 403
    message = "Forbidden."


class NotFound(DogApiError):
    status_code = 404
    message = "Not found."


class Conflict(DogApiError):
    status_code = 409
    message = "Conflict."


class DuplicateUsername(Conflict):
    message = "Username already exists."


class StorageError(DogApiError):
    """Database or filesystem failure. Message is always generic."""

    status_code = 500


def error_response(
    status_code: int, message: str, headers: Optional[dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message}, headers=headers
    )


async def _handle_domain_error(request: Request, exc: DogApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request.failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    return error_response(exc.status_code, exc.message, exc.headers)


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(400, "Invalid request body.")


async def _handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code, str(exc.detail), getattr(exc, "headers", None)
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error mapping on an app."""
    app.add_exception_handler(DogApiError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)
