"""Map pipeline errors to ``{"error": ...}`` JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import ContactDeletionError, InternalError

logger = logging.getLogger(__name__)


async def contact_deletion_error_handler(
    request: Request, exc: ContactDeletionError
) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    else:
        logger.info(
            "%s %s rejected with %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for exceptions that escaped the taxonomy; hides internals."""

    logger.exception(
        "Unhandled error for %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContactDeletionError, contact_deletion_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


__all__ = [
    "contact_deletion_error_handler",
    "register_exception_handlers",
    "unexpected_error_handler",
]
