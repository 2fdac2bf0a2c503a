"""
Response streaming channel exposed to handlers as ``context.response_stream``.

Handlers may run on a worker thread, so every write is marshalled onto the
server's event loop. The HTTP status and headers are committed by the first
write; before that they can still be changed.
"""

import asyncio
import logging
import threading
from typing import AsyncIterator, Dict, Union

logger = logging.getLogger("devserver.streaming")

# Queue sentinel marking the end of the stream.
_EOF = object()


class ResponseStream:
    """
    Writable channel that flushes bytes to the HTTP response incrementally.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = threading.Lock()
        self._started = asyncio.Event()
        self._committed = False
        self._closed = False
        self.status_code = 200
        self.headers: Dict[str, str] = {}

    # ---- handler side ----

    @property
    def committed(self) -> bool:
        """True once the first byte has been written."""
        return self._committed

    @property
    def closed(self) -> bool:
        return self._closed

    def set_status(self, status_code: int) -> bool:
        with self._lock:
            if self._committed or self._closed:
                logger.warning(
                    f"Ignoring status {status_code}: response stream already committed"
                )
                return False
            self.status_code = int(status_code)
            return True

    def set_header(self, name: str, value: str) -> bool:
        with self._lock:
            if self._committed or self._closed:
                logger.warning(f"Ignoring header {name}: response stream already committed")
                return False
            self.headers[name] = str(value)
            return True

    def set_content_type(self, content_type: str) -> bool:
        return self.set_header("Content-Type", content_type)

    def write(self, chunk: Union[bytes, bytearray, str]) -> bool:
        """
        Queue a chunk for the client. Returns False when the stream is closed.
        """
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        elif not isinstance(chunk, (bytes, bytearray)):
            raise TypeError(
                f"response_stream.write() expects bytes or str, got {type(chunk).__name__}"
            )

        with self._lock:
            if self._closed:
                return False
            first = not self._committed
            self._committed = True

        self._call(self._queue.put_nowait, bytes(chunk))
        if first:
            self._call(self._started.set)
        return True

    def end(self) -> None:
        """Close the stream; later writes are no-ops."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._call(self._queue.put_nowait, _EOF)
        self._call(self._started.set)

    # Node-style alias used by streaming handler samples.
    close = end

    def _call(self, fn, *args) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            fn(*args)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(fn, *args)

    # ---- server side ----

    async def wait_started(self) -> None:
        """Resolve once the first chunk was written or the stream ended."""
        await self._started.wait()

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield queued chunks until the stream ends."""
        while True:
            item = await self._queue.get()
            if item is _EOF:
                return
            yield item
