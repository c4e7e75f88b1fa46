"""Outbound stream handle owned by one session."""

import asyncio
import enum
from typing import AsyncGenerator, Optional

from .errors import ConnectionClosedError
from .events import StreamEvent, format_sse


class ConnectionState(str, enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    Write side of one client stream.

    Writers enqueue complete frames; the HTTP response is the single reader
    and sends them to the transport in order, so frames from the tick loop
    and from a broadcast never interleave.
    """

    def __init__(self) -> None:
        self.state = ConnectionState.OPEN
        self._frames: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    @property
    def closed(self) -> bool:
        return self.state is not ConnectionState.OPEN

    def write(self, event: StreamEvent) -> None:
        """Queue one event for delivery."""
        if self.closed:
            raise ConnectionClosedError(f"connection is {self.state.value}")
        self._frames.put_nowait(format_sse(event))

    def begin_close(self) -> None:
        if self.state is ConnectionState.OPEN:
            self.state = ConnectionState.CLOSING

    def mark_closed(self) -> None:
        """Latch the connection closed and release the reader."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        # None wakes a reader blocked on an empty queue
        self._frames.put_nowait(None)

    async def frames(self) -> AsyncGenerator[str, None]:
        """Yield queued frames until the connection is closed."""
        while True:
            frame = await self._frames.get()
            if frame is None:
                return
            yield frame

