# Output sinks for the event channel
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from bami_service.app.service.exceptions import SinkClosedError

logger = logging.getLogger(__name__)

class EventSink(ABC):
    """A live destination for SSE frames. Writes never suspend."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass

    @abstractmethod
    def write(self, frame: str) -> None:
        """Queues one frame. Raises SinkClosedError once the sink is closed."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class QueueSink(EventSink):
    """
    Sink backed by an asyncio.Queue, drained by a streaming HTTP response.

    Frames come out of `frames()` in write order. Closing the sink ends the
    iteration after frames already queued have been yielded.
    """

    _CLOSE_MARKER = None

    def __init__(self, maxsize: int = 0):
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: str) -> None:
        if self._closed:
            raise SinkClosedError("Cannot write to a closed sink.")
        self._queue.put_nowait(frame) # QueueFull propagates to the channel, which drops the frame

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(self._CLOSE_MARKER)
        except asyncio.QueueFull:
            logger.debug("Sink queue full while closing; reader stops on the next empty read.")

    async def frames(self) -> AsyncIterator[str]:
        while True:
            if self._closed and self._queue.empty():
                return
            frame = await self._queue.get()
            if frame is self._CLOSE_MARKER:
                return
            yield frame
