"""
Invocation result models.

Standardizes the output of the handler invocation pipeline.
"""

import base64
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class HandlerSuccess(BaseModel):
    """The handler completed with a result (possibly None)."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    value: Any = None


class HandlerFailure(BaseModel):
    """
    The handler completed with an error.

    ``error`` is usually an exception, but callback-style handlers may pass
    any value (a message string, an error-shaped dict).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    error: Any


CompletionSignal = Union[HandlerSuccess, HandlerFailure]


class OutboundResponse(BaseModel):
    """
    Unified HTTP response produced from a completion signal.

    Used to decouple the invocation pipeline from FastAPI Response objects.
    """

    status_code: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    multi_headers: Dict[str, List[str]] = Field(default_factory=dict)
    body: str = ""
    is_base64_encoded: bool = False

    def body_bytes(self) -> bytes:
        """Return the payload to put on the wire."""
        if self.is_base64_encoded:
            # Non-alphabet characters (e.g. wrapped lines) are discarded.
            return base64.b64decode(self.body)
        return self.body.encode("utf-8")

    def header_items(self) -> List[tuple]:
        """Flatten single- and multi-value headers into (name, value) pairs."""
        items = []
        seen = set()
        for name, values in self.multi_headers.items():
            seen.add(name.lower())
            for value in values:
                items.append((name, value))
        for name, value in self.headers.items():
            if name.lower() in seen:
                continue
            items.append((name, value))
        return items


class ErrorPayload(BaseModel):
    """Body returned when the handler reports an error."""

    errorMessage: str
    errorType: str
    stackTrace: Optional[List[str]] = None
