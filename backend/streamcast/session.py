"""Per-client event stream session: registration, time ticks and teardown."""

import asyncio
import logging
from typing import AsyncGenerator, Optional

from .config import TICK_INTERVAL_SEC
from .connection import Connection
from .events import ConnectionEvent, TimeEvent
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EventStreamSession:
    """
    Owns one connection from acceptance to teardown.

    `start()` registers the connection, sends the confirmation event and
    launches the tick task. `close()` is the single cleanup path: it cancels
    the tick task and deregisters the connection, and runs at most once.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        connection: Optional[Connection] = None,
        tick_interval: float = TICK_INTERVAL_SEC,
    ):
        self.registry = registry
        self.connection = connection or Connection()
        self.tick_interval = tick_interval
        self.ticker: Optional[asyncio.Task] = None
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def start(self) -> None:
        """Register the connection and begin ticking. Requires a running loop."""
        self.registry.add(self.connection)
        self.connection.write(ConnectionEvent())
        self.ticker = asyncio.create_task(self._tick_loop())
        logger.info("Client connected, active connections: %d", self.registry.size())

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)

            if self.connection.closed:
                logger.debug("Connection already closed, stopping ticks")
                return

            try:
                self.connection.write(TimeEvent.now())
            except Exception:
                logger.warning("Failed to write time event, stopping ticks", exc_info=True)
                return

    def close(self) -> None:
        """Stop ticking and remove the connection from the registry."""
        if self._finished:
            return
        self._finished = True

        self.connection.begin_close()
        if self.ticker is not None and not self.ticker.done():
            self.ticker.cancel()
        self.registry.remove(self.connection)
        self.connection.mark_closed()
        logger.info("Client disconnected, active connections: %d", self.registry.size())

    async def aclose(self) -> None:
        """Async form of `close()`, safe to schedule on the event loop."""
        self.close()

    async def stream(self) -> AsyncGenerator[str, None]:
        """
        Yield encoded frames for the HTTP response.

        The generator is closed by the server when the client goes away,
        which runs `close()`.
        """
        try:
            async for frame in self.connection.frames():
                yield frame
        finally:
            self.close()
