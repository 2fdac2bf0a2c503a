"""
Completion adapter: turns a handler's completion signal into an HTTP response.

Success results shaped like an API Gateway proxy response (a mapping with a
``statusCode`` key) are used verbatim; any other value is sent as JSON with
status 200. Note the heuristic: a plain payload that happens to carry a
``statusCode`` key is read as a full proxy response.
"""

import base64
import binascii
import json
import logging
import traceback
from collections.abc import Mapping
from typing import Any, Dict, List

from starlette.responses import Response, StreamingResponse

from lambdasync.devserver.core.exceptions import ProxyResponseError
from lambdasync.devserver.core.streaming import ResponseStream
from lambdasync.devserver.models.result import (
    CompletionSignal,
    ErrorPayload,
    HandlerFailure,
    OutboundResponse,
)

logger = logging.getLogger("devserver.responses")

NO_CACHE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

JSON_CONTENT_TYPE = "application/json"

# Statuses that must not carry a body.
_BODYLESS_STATUSES = frozenset({204, 304})


def _error_payload(error: Any) -> ErrorPayload:
    if isinstance(error, BaseException):
        try:
            message = str(error)
        except Exception:
            message = "Handler failed with an error that could not be serialized"
        stack = traceback.format_exception(type(error), error, error.__traceback__)
        return ErrorPayload(
            errorMessage=message or type(error).__name__,
            errorType=type(error).__name__,
            stackTrace=[line.rstrip("\n") for line in stack] if error.__traceback__ else None,
        )

    if isinstance(error, Mapping) and "errorMessage" in error:
        return ErrorPayload(
            errorMessage=str(error["errorMessage"]),
            errorType=str(error.get("errorType", "Error")),
        )

    if isinstance(error, str):
        return ErrorPayload(errorMessage=error, errorType="Error")

    try:
        message = json.dumps(error)
    except (TypeError, ValueError):
        message = "Handler failed with an error that could not be serialized"
    return ErrorPayload(errorMessage=message, errorType="Error")


def error_response(error: Any) -> OutboundResponse:
    """Map a handler error to a 500 response and log it for the operator."""
    payload = _error_payload(error)
    if isinstance(error, BaseException):
        logger.error(
            f"Handler returned an error: {payload.errorMessage}",
            exc_info=(type(error), error, error.__traceback__),
            extra={"error_type": payload.errorType},
        )
    else:
        logger.error(
            f"Handler returned an error: {payload.errorMessage}",
            extra={"error_type": payload.errorType},
        )

    return OutboundResponse(
        status_code=500,
        headers={"Content-Type": JSON_CONTENT_TYPE},
        body=payload.model_dump_json(exclude_none=True),
    )


def _coerce_status(value: Any) -> int:
    if isinstance(value, bool):
        raise ProxyResponseError(f"statusCode must be an integer, got {value!r}")
    try:
        status_code = int(value)
    except (TypeError, ValueError):
        raise ProxyResponseError(f"statusCode must be an integer, got {value!r}") from None
    if not 100 <= status_code <= 599:
        raise ProxyResponseError(f"statusCode out of range: {status_code}")
    return status_code


def _coerce_headers(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ProxyResponseError(f"headers must be an object, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items() if v is not None}


def _coerce_multi_headers(value: Any) -> Dict[str, List[str]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ProxyResponseError(
            f"multiValueHeaders must be an object, got {type(value).__name__}"
        )
    result = {}
    for name, values in value.items():
        if isinstance(values, (list, tuple)):
            result[str(name)] = [str(v) for v in values]
        else:
            result[str(name)] = [str(values)]
    return result


def _has_header(headers: Dict[str, str], multi: Dict[str, List[str]], name: str) -> bool:
    wanted = name.lower()
    return any(k.lower() == wanted for k in headers) or any(k.lower() == wanted for k in multi)


def proxy_response(result: Mapping) -> OutboundResponse:
    """Read an API Gateway proxy-shaped result."""
    status_code = _coerce_status(result.get("statusCode"))
    headers = _coerce_headers(result.get("headers"))
    multi_headers = _coerce_multi_headers(result.get("multiValueHeaders"))
    is_base64 = bool(result.get("isBase64Encoded", False))

    body = result.get("body")
    if body is None:
        body = ""
    elif isinstance(body, (bytes, bytearray)):
        if is_base64:
            body = bytes(body).decode("ascii", errors="ignore")
        else:
            body = bytes(body).decode("utf-8", errors="replace")
    elif not isinstance(body, str):
        # Real API Gateway rejects this; locally we are lenient and JSON-encode it.
        try:
            body = json.dumps(body)
        except (TypeError, ValueError) as e:
            raise ProxyResponseError(f"body is not serializable: {e}") from e

    if not _has_header(headers, multi_headers, "content-type"):
        headers["Content-Type"] = JSON_CONTENT_TYPE

    return OutboundResponse(
        status_code=status_code,
        headers=headers,
        multi_headers=multi_headers,
        body=body,
        is_base64_encoded=is_base64,
    )


def completion_to_response(signal: CompletionSignal) -> OutboundResponse:
    """
    Convert a completion signal into an OutboundResponse.

    Raises:
        ProxyResponseError: the handler completed without a usable result.
    """
    if isinstance(signal, HandlerFailure):
        return error_response(signal.error)

    value = signal.value
    if value is None:
        raise ProxyResponseError("handler completed without a response")

    if isinstance(value, Mapping) and "statusCode" in value:
        return proxy_response(value)

    if isinstance(value, (bytes, bytearray)):
        return OutboundResponse(
            headers={"Content-Type": "application/octet-stream"},
            body=base64.b64encode(bytes(value)).decode("ascii"),
            is_base64_encoded=True,
        )

    try:
        body = json.dumps(value)
    except (TypeError, ValueError) as e:
        raise ProxyResponseError(f"result is not JSON serializable: {e}") from e

    return OutboundResponse(headers={"Content-Type": JSON_CONTENT_TYPE}, body=body)


def _apply_headers(response: Response, header_items) -> None:
    """Apply handler headers on top of the defaults already on ``response``."""
    applied = set()
    for name, value in header_items:
        key = name.lower()
        if key == "content-length":
            continue
        if key in applied:
            response.headers.append(name, value)
        else:
            # Replaces a same-named default (e.g. a handler's own Cache-Control).
            response.headers[name] = value
            applied.add(key)


def to_http_response(outbound: OutboundResponse) -> Response:
    """
    Render an OutboundResponse for the transport: no-cache headers first,
    handler headers on top.
    """
    try:
        payload = outbound.body_bytes()
    except (binascii.Error, ValueError) as e:
        raise ProxyResponseError(f"body is flagged base64 but does not decode: {e}") from e

    if outbound.status_code in _BODYLESS_STATUSES:
        payload = b""

    response = Response(content=payload, status_code=outbound.status_code)

    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
    _apply_headers(response, outbound.header_items())
    return response


def streaming_response(stream: ResponseStream) -> StreamingResponse:
    """Render a committed ResponseStream as a chunked HTTP response."""
    response = StreamingResponse(stream.chunks(), status_code=stream.status_code)
    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
    _apply_headers(response, stream.headers.items())
    return response
