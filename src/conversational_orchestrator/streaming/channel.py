"""
Outbound side of a streaming response.

'ResponseChannel' decouples the producer (the stream bridge) from the HTTP
transport. 'write' and 'close' never block and never fail: once the channel is
closed, either by the producer or because the client went away, further writes
are dropped. The transport drains the channel through 'stream()'.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import cast

from loguru import logger

from conversational_orchestrator.streaming.frames import Frame

_CLOSED = object()


class ResponseChannel:
    def __init__(self) -> None:
        self._queue: asyncio.Queue[bytes | object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: Frame) -> bool:
        """Queue 'frame' for the client; return False when the channel is already closed."""
        if self._closed:
            logger.debug(f"Dropping {frame.__class__.__name__}: channel is closed")
            return False
        self._queue.put_nowait(frame.encode())
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Yield encoded frames until the channel is closed."""
        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    return
                yield cast(bytes, item)
        finally:
            if not self._closed:
                logger.debug("Client disconnected before the stream completed")
                self._closed = True
