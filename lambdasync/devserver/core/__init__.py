"""
Core logic package.

Provides the request/response adapter: event translation, invocation
context, single-use completion and HTTP response conversion.
"""

from .completion import CompletionCell, make_callback
from .context import ContextBuilder, InvocationContext
from .event_builder import EventBuilder, V1ProxyEventBuilder
from .responses import NO_CACHE_HEADERS, completion_to_response, to_http_response
from .streaming import ResponseStream

__all__ = [
    "CompletionCell",
    "make_callback",
    "ContextBuilder",
    "InvocationContext",
    "EventBuilder",
    "V1ProxyEventBuilder",
    "NO_CACHE_HEADERS",
    "completion_to_response",
    "to_http_response",
    "ResponseStream",
]
