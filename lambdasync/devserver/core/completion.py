"""
Single-resolution completion cell for one invocation.

The handler may finish through a callback, a return value or an awaited
coroutine, from the event loop or from a worker thread. Whatever the route,
the first signal wins; later ones are logged and dropped.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Optional

from lambdasync.devserver.core.exceptions import HandlerTimeoutError
from lambdasync.devserver.models.result import CompletionSignal, HandlerFailure, HandlerSuccess

logger = logging.getLogger("devserver.completion")


class CompletionCell:
    """
    A result slot that can be set at most once.

    ``set()`` is thread-safe and never raises; it returns False when the
    signal was ignored (already completed, or the invocation was abandoned).
    """

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id
        self._future: concurrent.futures.Future = concurrent.futures.Future()
        self._lock = threading.Lock()
        self._abandoned = False

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def set(self, signal: CompletionSignal) -> bool:
        with self._lock:
            if self._abandoned:
                logger.warning(
                    "Handler completed after the invocation was abandoned; ignoring",
                    extra={"aws_request_id": self.request_id},
                )
                return False
            if self._future.done():
                logger.warning(
                    "Handler signalled completion more than once; ignoring the extra signal",
                    extra={"aws_request_id": self.request_id},
                )
                return False
            self._future.set_result(signal)
            return True

    def abandon(self) -> None:
        """Stop accepting signals (timeout or client gone)."""
        with self._lock:
            self._abandoned = True

    def peek(self) -> Optional[CompletionSignal]:
        """Return the signal if one was set, without waiting."""
        if self._future.done():
            return self._future.result()
        return None

    async def wait(self, timeout: float) -> CompletionSignal:
        """
        Await the signal for at most ``timeout`` seconds.

        Raises:
            HandlerTimeoutError: no signal arrived in time; the cell is abandoned.
        """
        try:
            # shield: a timeout must not cancel the shared future under the lock.
            return await asyncio.wait_for(
                asyncio.shield(asyncio.wrap_future(self._future)), timeout
            )
        except asyncio.TimeoutError:
            self.abandon()
            # A signal may have landed between the timeout and abandon().
            signal = self.peek()
            if signal is not None:
                return signal
            raise HandlerTimeoutError(timeout) from None


def make_callback(cell: CompletionCell) -> Callable[..., bool]:
    """
    Build the ``callback(error, result)`` handed to callback-style handlers.

    The callback returns True if it delivered the signal. It never raises
    into the handler.
    """

    def callback(error: Any = None, result: Any = None) -> bool:
        if error is not None:
            return cell.set(HandlerFailure(error=error))
        return cell.set(HandlerSuccess(value=result))

    return callback
