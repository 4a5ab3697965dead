"""Exception family and handlers for consistent error responses.

Remote failures (``GatewayError`` and subclasses) are raised by the deal API
gateway; the wizard controller catches them and keeps the operator on the
current step, while the list views let them reach the handlers below.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DealDeskException(Exception):
    """Base exception for dealdesk application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


# ── Remote gateway ───────────────────────────────────────────

class GatewayError(DealDeskException):
    """A call to the deal management API did not succeed."""

    def __init__(self, message: str, error_code: str = "UPSTREAM_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=error_code,
        )


class TransportError(GatewayError):
    """Network failure: no response was received."""

    def __init__(self, message: str):
        super().__init__(message, error_code="UPSTREAM_UNREACHABLE")


class ApplicationError(GatewayError):
    """Non-2xx response, message taken from the response body when present."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        error_code: str = "UPSTREAM_ERROR",
    ):
        self.upstream_status = upstream_status
        super().__init__(message, error_code=error_code)


class UnexpectedResponseShape(ApplicationError):
    """2xx response that lacks a field the caller depends on."""

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(
            message,
            upstream_status=upstream_status,
            error_code="UPSTREAM_BAD_RESPONSE",
        )


# ── Wizard ───────────────────────────────────────────────────

class WizardNotStartedError(DealDeskException):
    def __init__(self, message: str = "No onboarding in progress"):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="WIZARD_NOT_STARTED",
        )


class WizardBusyError(DealDeskException):
    """A step transition is still waiting on the deal API."""

    def __init__(self, message: str = "A step is already being processed"):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="WIZARD_BUSY",
        )


class WizardStateError(DealDeskException):
    """The requested transition is not available from the current step."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="WIZARD_INVALID_TRANSITION",
        )


class PayloadMappingError(DealDeskException):
    """Wizard fields cannot be turned into a deal API payload."""

    def __init__(self, message: str, error_code: str = "PAYLOAD_MAPPING_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class UnsupportedCategoryError(PayloadMappingError):
    """Investor category has no profile payload mapping."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(
            f"Investor type not supported: {category}",
            error_code="UNSUPPORTED_INVESTOR_TYPE",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: dict | None = None,
) -> JSONResponse:
    """Error envelope shared by every handler.

    ``{"error": {"code": ..., "message": ..., "details": {...}}}``, where
    ``details`` is left out when there is nothing to add.
    """
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def dealdesk_exception_handler(
    request: Request,
    exc: DealDeskException,
) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)

    upstream_status = getattr(exc, "upstream_status", None)
    return create_error_response(
        exc.status_code,
        exc.message,
        exc.error_code,
        details={"upstream_status": upstream_status} if upstream_status is not None else None,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request bodies; wizard field rules are reported in the progress instead."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("%s %s rejected: %d invalid field(s)",
                   request.method, request.url.path, len(errors))
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path,
                 exc_info=exc)
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register the handlers above with the FastAPI app."""
    app.add_exception_handler(DealDeskException, dealdesk_exception_handler)
    # FastAPI's HTTPException subclasses Starlette's, so one registration covers both
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
