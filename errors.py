"""
Domain exceptions raised by the services and their HTTP mapping.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Base class for errors the API reports to the client."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(LibraryError):
    """A looked-up author or book does not exist."""


class ValidationFailed(LibraryError):
    """An entity violates its constraints; carries every violation message."""

    def __init__(self, messages: list[str]):
        super().__init__("; ".join(messages))
        self.messages = messages


class PayloadError(LibraryError):
    """The request body could not be turned into a valid entity."""


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message}
    )


async def validation_failed_handler(
    request: Request, exc: ValidationFailed
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.messages}
    )


async def payload_error_handler(request: Request, exc: PayloadError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message}
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
    app.add_exception_handler(PayloadError, payload_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
