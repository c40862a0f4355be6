"""Error taxonomy and the HTTP boundary that renders it.

Learn: Services raise these domain errors; they never build HTTP
responses themselves. create_app() registers the handlers below, which
turn every error into a stable {"detail", "code"} body. Anything that
is not an InkwellError is logged with its traceback and answered with
a generic 500. Stack traces and DB errors never reach the caller.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class InkwellError(Exception):
    """Base class for errors that map to a fixed status and code."""

    status_code: int = 500
    code: str = "unexpected"
    message: str = "Server error"

    def __init__(
        self,
        message: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)


class DuplicateEmail(InkwellError):
    status_code = 409
    code = "duplicate_email"
    message = "User already exists"


class InvalidCredentials(InkwellError):
    """Same message for unknown email and wrong password (no enumeration)."""

    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"


class InvalidAssertion(InkwellError):
    status_code = 401
    code = "invalid_assertion"
    message = "Invalid Google token"


class Unauthenticated(InkwellError):
    status_code = 401
    code = "unauthenticated"
    message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(InkwellError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden"


class NotFound(InkwellError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class UploadFailed(InkwellError):
    status_code = 502
    code = "upload_failed"
    message = "Image upload failed"


class ValidationFailed(InkwellError):
    status_code = 422
    code = "validation_failed"
    message = "Invalid request"


class Unexpected(InkwellError):
    pass


def _error_body(code: str, message: str, **extra) -> dict:
    return {"detail": message, "code": code, **extra}


async def _handle_inkwell_error(request: Request, exc: InkwellError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message),
        headers=exc.headers,
    )


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content=_error_body(
            ValidationFailed.code,
            ValidationFailed.message,
            errors=jsonable_encoder(exc.errors()),
        ),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_error",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=Unexpected.status_code,
        content=_error_body(Unexpected.code, Unexpected.message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP responses."""
    app.add_exception_handler(InkwellError, _handle_inkwell_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected)
