"""
Custom exception classes.

Represent errors related to loading and invoking the local handler.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("devserver.exceptions")


class DevServerError(Exception):
    """Base exception class for the dev server."""

    pass


class TranslationError(DevServerError):
    """Raised when an inbound request cannot be mapped to an event at all."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed request: {detail}")


class HandlerLoadError(DevServerError):
    """Raised when the handler module cannot be imported or has no handler."""

    def __init__(self, handler_ref: str, cause: Optional[BaseException] = None):
        self.handler_ref = handler_ref
        self.cause = cause
        message = f"Failed to load handler {handler_ref}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class HandlerTimeoutError(DevServerError):
    """The handler did not complete within the invocation timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Handler timed out after {timeout:g}s")


class ProxyResponseError(DevServerError):
    """The handler completed, but its result is not a usable proxy response."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed Lambda proxy response: {detail}")


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": str(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})
