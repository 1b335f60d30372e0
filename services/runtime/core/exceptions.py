"""
Custom exception classes and failure values.

Exceptions describe what went wrong while resolving or running a handler.
Failures are the values the invocation pipeline passes around instead of
raising, so every path ends with a response.
"""

import enum
import logging

from fastapi import Request, status
from fastapi.responses import Response
from pydantic import BaseModel

from .headers import LOG_ID_HEADER

logger = logging.getLogger("runtime.exceptions")


class RuntimeAdapterError(Exception):
    """Base exception class for the runtime adapter."""

    pass


class EntrypointNotFoundError(RuntimeAdapterError):
    """Raised when no handler is registered under the configured entrypoint."""

    def __init__(self, entrypoint: str):
        self.entrypoint = entrypoint
        super().__init__(f"Entrypoint not found: {entrypoint}")


class HandlerRegistrationError(RuntimeAdapterError):
    """Raised when a handler is registered twice or is not callable."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Cannot register handler {name!r}: {reason}")


class LoggingUnavailableError(RuntimeAdapterError):
    """Raised by a log sink that cannot accept records for a session."""

    def __init__(self, log_id: str, cause: Exception):
        self.log_id = log_id
        self.cause = cause
        super().__init__(f"Log sink unavailable for {log_id}: {cause}")


class FailureKind(str, enum.Enum):
    VALIDATION = "validation"
    ENTRYPOINT_NOT_FOUND = "entrypoint_not_found"
    INVOCATION = "invocation"
    TIMEOUT = "timeout"
    MISSING_RETURN = "missing_return"
    LOGGING_UNAVAILABLE = "logging_unavailable"


class Failure(BaseModel):
    """
    A failure travelling through the pipeline.

    Only VALIDATION failures expose their detail to the caller.
    """

    kind: FailureKind
    detail: str = ""

    @property
    def is_client_visible(self) -> bool:
        return self.kind is FailureKind.VALIDATION


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for exceptions escaping the invocation pipeline.

    The body stays empty so no internal detail reaches the caller.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return Response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=b"",
        headers={LOG_ID_HEADER: getattr(request.state, "log_id", "")},
    )
