"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .aws_v1 import APIGatewayProxyEvent, CaseInsensitiveHeaders
from .request import InboundRequest
from .result import (
    CompletionSignal,
    ErrorPayload,
    HandlerFailure,
    HandlerSuccess,
    OutboundResponse,
)

__all__ = [
    "APIGatewayProxyEvent",
    "CaseInsensitiveHeaders",
    "InboundRequest",
    "CompletionSignal",
    "ErrorPayload",
    "HandlerFailure",
    "HandlerSuccess",
    "OutboundResponse",
]
