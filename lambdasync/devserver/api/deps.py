"""
Dependency Injection for the dev server API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated, Dict, List

from fastapi import Depends, Request

from lambdasync.common.core.request_context import generate_request_id, get_request_id

from ..config import DevServerConfig
from ..core.exceptions import TranslationError
from ..models.request import InboundRequest
from ..services.handler_provider import HandlerProvider
from ..services.processor import DevServerRequestProcessor


# ==========================================
# 1. Service Accessors
# ==========================================


def get_config(request: Request) -> DevServerConfig:
    return request.app.state.config


def get_handler_provider(request: Request) -> HandlerProvider:
    return request.app.state.handler_provider


def get_processor(request: Request) -> DevServerRequestProcessor:
    return request.app.state.processor


# Service Dependency Type Aliases
ConfigDep = Annotated[DevServerConfig, Depends(get_config)]
HandlerProviderDep = Annotated[HandlerProvider, Depends(get_handler_provider)]
ProcessorDep = Annotated[DevServerRequestProcessor, Depends(get_processor)]


# ==========================================
# 2. Logic Dependencies (Capture)
# ==========================================


def get_invocation_id() -> str:
    """Invocation id assigned by the middleware (or a fresh one outside it)."""
    return get_request_id() or generate_request_id()


async def capture_inbound_request(request: Request) -> InboundRequest:
    """
    Snapshot the transport request into an immutable InboundRequest.

    Raises:
        TranslationError: 400 when the request line or query cannot be decoded
    """
    try:
        headers: Dict[str, str] = {}
        multi_headers: Dict[str, List[str]] = {}
        for raw_key, raw_value in request.headers.raw:
            key = raw_key.decode("latin-1")
            value = raw_value.decode("latin-1")
            headers[key] = value
            multi_headers.setdefault(key, []).append(value)

        query_params: Dict[str, str] = {}
        multi_query_params: Dict[str, List[str]] = {}
        for key, value in request.query_params.multi_items():
            query_params[key] = value
            multi_query_params.setdefault(key, []).append(value)

        path = request.url.path or "/"
        query_string = request.scope.get("query_string", b"").decode("latin-1")
    except (UnicodeDecodeError, ValueError) as e:
        raise TranslationError(str(e)) from e

    if not path.startswith("/"):
        path = f"/{path}"

    body = await request.body()

    http_version = request.scope.get("http_version", "1.1")
    return InboundRequest(
        method=request.method,
        path=path,
        query_string=query_string,
        headers=headers,
        multi_headers=multi_headers,
        query_params=query_params,
        multi_query_params=multi_query_params,
        body=body,
        source_ip=request.client.host if request.client else "127.0.0.1",
        protocol=f"HTTP/{http_version}",
    )


# Logic Dependency Type Aliases
InvocationIdDep = Annotated[str, Depends(get_invocation_id)]
InboundRequestDep = Annotated[InboundRequest, Depends(capture_inbound_request)]
