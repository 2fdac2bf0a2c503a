"""
Invocation context passed to the handler as its second argument.

Mirrors the attributes of the Lambda Python runtime context object, with a
local deadline derived from the dev server's invocation timeout.
"""

import time
from typing import Any, Optional

from lambdasync.devserver.core.streaming import ResponseStream


class InvocationContext:
    """
    Metadata for one in-flight invocation.
    """

    def __init__(
        self,
        aws_request_id: str,
        function_name: str,
        function_version: str,
        invoked_function_arn: str,
        memory_limit_in_mb: int,
        timeout: float,
        response_stream: Optional[ResponseStream] = None,
    ):
        self.aws_request_id = aws_request_id
        self.function_name = function_name
        self.function_version = function_version
        self.invoked_function_arn = invoked_function_arn
        self.memory_limit_in_mb = memory_limit_in_mb
        self.log_group_name = f"/aws/lambda/{function_name}"
        self.log_stream_name = f"{time.strftime('%Y/%m/%d')}/[{function_version}]{aws_request_id}"
        self.identity: Any = None
        self.client_context: Any = None
        self.response_stream = response_stream
        self._deadline = time.monotonic() + timeout

    def get_remaining_time_in_millis(self) -> int:
        """Milliseconds left before the dev server gives up on this invocation."""
        return max(0, int((self._deadline - time.monotonic()) * 1000))

    def __repr__(self) -> str:
        return (
            f"InvocationContext(aws_request_id={self.aws_request_id!r}, "
            f"function_name={self.function_name!r})"
        )


class ContextBuilder:
    """Builds an InvocationContext per request from the server settings."""

    def __init__(
        self,
        function_name: str,
        function_version: str = "$LATEST",
        region: str = "us-east-1",
        account_id: str = "123456789012",
        memory_limit_in_mb: int = 128,
        timeout: float = 30.0,
    ):
        self.function_name = function_name
        self.function_version = function_version
        self.region = region
        self.account_id = account_id
        self.memory_limit_in_mb = memory_limit_in_mb
        self.timeout = timeout

    @property
    def function_arn(self) -> str:
        return f"arn:aws:lambda:{self.region}:{self.account_id}:function:{self.function_name}"

    def build(
        self, request_id: str, response_stream: Optional[ResponseStream] = None
    ) -> InvocationContext:
        return InvocationContext(
            aws_request_id=request_id,
            function_name=self.function_name,
            function_version=self.function_version,
            invoked_function_arn=self.function_arn,
            memory_limit_in_mb=self.memory_limit_in_mb,
            timeout=self.timeout,
            response_stream=response_stream,
        )
