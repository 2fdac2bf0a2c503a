"""
Inbound request model.

Captures everything the event translator needs from the transport layer, so
the translation itself never touches a FastAPI/Starlette Request object.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundRequest(BaseModel):
    """
    Immutable snapshot of one HTTP request.

    Header keys keep the casing they were received with; use ``header()``
    for case-insensitive lookups.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    query_string: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    multi_headers: Dict[str, List[str]] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict)
    multi_query_params: Dict[str, List[str]] = Field(default_factory=dict)
    body: bytes = b""
    source_ip: str = "127.0.0.1"
    protocol: str = "HTTP/1.1"

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default

    @property
    def content_type(self) -> str:
        return (self.header("content-type") or "").strip()

    @property
    def user_agent(self) -> Optional[str]:
        return self.header("user-agent")
