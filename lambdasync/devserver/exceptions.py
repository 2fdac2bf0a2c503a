"""
Where: lambdasync/devserver/exceptions.py
What: Exception handler registration and HTTP status mappings.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import (
    HandlerLoadError,
    HandlerTimeoutError,
    ProxyResponseError,
    TranslationError,
    global_exception_handler,
    http_exception_handler,
)
from .core.responses import NO_CACHE_HEADERS

logger = logging.getLogger("devserver.exceptions")


async def translation_error_handler(request: Request, exc: TranslationError):
    logger.warning(f"Rejected unparseable request: {exc.detail}")
    return JSONResponse(
        status_code=400,
        content={"message": "Bad Request", "detail": exc.detail},
        headers=NO_CACHE_HEADERS,
    )


async def handler_load_error_handler(request: Request, exc: HandlerLoadError):
    logger.error(str(exc), exc_info=exc.cause is not None)
    return JSONResponse(
        status_code=500,
        content={"message": "Handler could not be loaded", "detail": str(exc)},
        headers=NO_CACHE_HEADERS,
    )


async def handler_timeout_handler(request: Request, exc: HandlerTimeoutError):
    return JSONResponse(
        status_code=502,
        content={"message": str(exc)},
        headers=NO_CACHE_HEADERS,
    )


async def proxy_response_error_handler(request: Request, exc: ProxyResponseError):
    return JSONResponse(
        status_code=502,
        content={"message": "Internal server error", "detail": str(exc)},
        headers=NO_CACHE_HEADERS,
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    response = await global_exception_handler(request, exc)
    response.headers.update(NO_CACHE_HEADERS)
    return response


async def no_cache_http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = await http_exception_handler(request, exc)
    response.headers.update(NO_CACHE_HEADERS)
    return response


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.add_exception_handler(StarletteHTTPException, no_cache_http_exception_handler)
    app.add_exception_handler(TranslationError, translation_error_handler)
    app.add_exception_handler(HandlerLoadError, handler_load_error_handler)
    app.add_exception_handler(HandlerTimeoutError, handler_timeout_handler)
    app.add_exception_handler(ProxyResponseError, proxy_response_error_handler)
