"""
Services package.

Provides handler loading, invocation and request processing.
"""

from .handler_provider import HandlerProvider, ModuleHandlerProvider, StaticHandlerProvider
from .invoker import HandlerInvoker
from .processor import DevServerRequestProcessor

__all__ = [
    "HandlerProvider",
    "ModuleHandlerProvider",
    "StaticHandlerProvider",
    "HandlerInvoker",
    "DevServerRequestProcessor",
]
