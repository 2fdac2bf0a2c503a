"""
Handler Invoker Service

Runs the developer's handler with (event, context[, callback]) and waits,
bounded by the invocation timeout, for its single completion. Supports
callback-style handlers, plain return values, coroutines and streamed output.
"""

import asyncio
import contextvars
import functools
import inspect
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from lambdasync.devserver.core.completion import CompletionCell, make_callback
from lambdasync.devserver.core.context import InvocationContext
from lambdasync.devserver.core.exceptions import HandlerTimeoutError
from lambdasync.devserver.core.streaming import ResponseStream
from lambdasync.devserver.models.result import CompletionSignal, HandlerFailure, HandlerSuccess
from lambdasync.devserver.services.handler_provider import Handler

logger = logging.getLogger("devserver.invoker")


@dataclass
class InvocationOutcome:
    """Either a completion signal, or a stream that already started sending."""

    signal: Optional[CompletionSignal] = None
    stream: Optional[ResponseStream] = None

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None


def wants_callback(handler: Handler) -> bool:
    """True if the handler takes a third positional argument (the callback)."""
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return False

    positional = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 3


def _is_coroutine_handler(handler: Handler) -> bool:
    if inspect.iscoroutinefunction(handler):
        return True
    call = getattr(handler, "__call__", None)
    return inspect.iscoroutinefunction(call)


class HandlerInvoker:
    def __init__(self, timeout: float = 30.0, max_workers: int = 32):
        """
        Args:
            timeout: Seconds to wait for the handler to complete
            max_workers: Threads available to synchronous handlers
        """
        self.timeout = timeout
        self.max_workers = max_workers
        self._background: Set[asyncio.Task] = set()
        # A hung sync handler keeps its thread after its invocation times out.
        self._executor = ThreadPoolExecutor(max_workers, thread_name_prefix="lambdasync-handler")
        self._busy = 0
        self._busy_lock = threading.Lock()

    @property
    def busy_workers(self) -> int:
        """Worker threads currently running a handler."""
        with self._busy_lock:
            return self._busy

    def _call_in_worker(self, handler: Handler, args: tuple) -> Any:
        with self._busy_lock:
            self._busy += 1
        try:
            return handler(*args)
        finally:
            with self._busy_lock:
                self._busy -= 1

    async def _run_sync(self, handler: Handler, args: tuple) -> Any:
        busy = self.busy_workers
        if busy >= self.max_workers:
            logger.warning(
                f"All {self.max_workers} handler threads are busy; the invocation waits for one "
                f"to free up. Handlers that outlived their timeout still hold a thread.",
                extra={"busy_workers": busy, "max_workers": self.max_workers},
            )
        loop = asyncio.get_running_loop()
        ctx = contextvars.copy_context()
        call = functools.partial(ctx.run, self._call_in_worker, handler, args)
        return await loop.run_in_executor(self._executor, call)

    def shutdown(self) -> None:
        """Stop accepting work; threads still inside a hung handler are left to finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _execute(
        self,
        handler: Handler,
        event: Dict[str, Any],
        context: InvocationContext,
        cell: CompletionCell,
    ) -> None:
        callback_style = wants_callback(handler)
        args = (event, context, make_callback(cell)) if callback_style else (event, context)

        try:
            if _is_coroutine_handler(handler):
                result = await handler(*args)
            else:
                # Sync handlers run on a worker thread so a slow one never blocks the server.
                result = await self._run_sync(handler, args)
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            cell.set(HandlerFailure(error=e))
            return

        if callback_style and (result is None or cell.done):
            # Completion arrives (or already arrived) through the callback.
            return
        cell.set(HandlerSuccess(value=result))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def invoke(
        self,
        handler: Handler,
        event: Dict[str, Any],
        context: InvocationContext,
        timeout: Optional[float] = None,
    ) -> InvocationOutcome:
        """
        Invoke the handler once.

        Returns:
            InvocationOutcome with the completion signal, or with the response
            stream if the handler started streaming before completing.

        Raises:
            HandlerTimeoutError: no completion (and no streamed output) in time
        """
        timeout = self.timeout if timeout is None else timeout
        cell = CompletionCell(context.aws_request_id)
        stream = context.response_stream

        execution = self._spawn(self._execute(handler, event, context, cell))
        waiter = self._spawn(cell.wait(timeout))

        if stream is not None:
            started = asyncio.ensure_future(stream.wait_started())
            await asyncio.wait({waiter, started}, return_when=asyncio.FIRST_COMPLETED)
            if not started.done():
                started.cancel()
            if stream.committed:
                if waiter.done():
                    self._finish_stream(stream, waiter, execution)
                else:
                    waiter.add_done_callback(
                        lambda t: self._finish_stream(stream, t, execution)
                    )
                return InvocationOutcome(stream=stream)

        try:
            signal = await waiter
        except HandlerTimeoutError:
            logger.warning(
                f"Handler did not complete within {timeout:g}s",
                extra={"aws_request_id": context.aws_request_id, "timeout": timeout},
            )
            execution.cancel()
            raise
        finally:
            if stream is not None:
                # Late writes from an abandoned or finished handler become no-ops.
                stream.end()

        return InvocationOutcome(signal=signal)

    @staticmethod
    def _finish_stream(
        stream: ResponseStream, waiter: asyncio.Future, execution: asyncio.Future
    ) -> None:
        if waiter.cancelled():
            stream.end()
            return
        exc = waiter.exception()
        if isinstance(exc, HandlerTimeoutError):
            logger.warning(f"Streaming handler timed out; closing stream: {exc}")
            execution.cancel()
        elif exc is not None:
            logger.error(f"Streaming handler wait failed: {exc}")
        else:
            signal = waiter.result()
            if isinstance(signal, HandlerFailure):
                logger.error(
                    f"Streaming handler failed after the response was committed: {signal.error}"
                )
        stream.end()
