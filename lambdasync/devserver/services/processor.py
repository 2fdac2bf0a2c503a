"""
Dev Server Request Processor - Service Layer

Standardizes the flow: InboundRequest -> Event -> Invocation -> HTTP response.
"""

import asyncio
import logging
import time

from fastapi.concurrency import run_in_threadpool
from starlette.responses import Response

from lambdasync.devserver.core.context import ContextBuilder
from lambdasync.devserver.core.event_builder import EventBuilder
from lambdasync.devserver.core.responses import (
    completion_to_response,
    streaming_response,
    to_http_response,
)
from lambdasync.devserver.core.streaming import ResponseStream
from lambdasync.devserver.models.request import InboundRequest
from lambdasync.devserver.services.handler_provider import HandlerProvider
from lambdasync.devserver.services.invoker import HandlerInvoker

logger = logging.getLogger("devserver.processor")


class DevServerRequestProcessor:
    """
    Orchestrates one invocation per request.

    Handler load errors, timeouts and malformed proxy responses propagate as
    DevServerError subclasses and are mapped to HTTP by the exception handlers.
    """

    def __init__(
        self,
        provider: HandlerProvider,
        event_builder: EventBuilder,
        context_builder: ContextBuilder,
        invoker: HandlerInvoker,
    ):
        self.provider = provider
        self.event_builder = event_builder
        self.context_builder = context_builder
        self.invoker = invoker

    async def process_request(self, request: InboundRequest, request_id: str) -> Response:
        """
        Process a request from InboundRequest to a Starlette Response.
        """
        # 1. Reacquire the handler (reloads after edits)
        handler = await run_in_threadpool(self.provider.current)

        # 2. Build event and context
        event = self.event_builder.build(request, request_id=request_id)
        stream = ResponseStream(asyncio.get_running_loop())
        context = self.context_builder.build(request_id, response_stream=stream)

        # 3. Invoke and wait for the single completion
        logger.info(
            f"START RequestId: {request_id}",
            extra={"method": request.method, "path": request.path},
        )
        started = time.perf_counter()
        try:
            outcome = await self.invoker.invoke(handler, event, context)
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.info(
                f"END RequestId: {request_id} Duration: {duration_ms} ms",
                extra={"duration_ms": duration_ms},
            )

        # 4. Convert to the single transport write
        if outcome.is_streaming:
            return streaming_response(outcome.stream)
        return to_http_response(completion_to_response(outcome.signal))
