"""In-memory registry of the streams that are currently open."""

import logging
import threading
from typing import Callable, Set

from .connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Set of live connections shared by sessions and the broadcast dispatcher."""

    def __init__(self) -> None:
        self._connections: Set[Connection] = set()
        self._lock = threading.Lock()

    def add(self, connection: Connection) -> None:
        with self._lock:
            self._connections.add(connection)

    def remove(self, connection: Connection) -> None:
        """Forget a connection; removing an unknown connection is a no-op."""
        with self._lock:
            self._connections.discard(connection)

    def size(self) -> int:
        with self._lock:
            return len(self._connections)

    def for_each(self, visitor: Callable[[Connection], None]) -> int:
        """
        Call visitor on a snapshot of the current members.

        A failing visitor is logged and iteration moves on to the next member.
        Returns the number of members visited.
        """
        with self._lock:
            snapshot = list(self._connections)

        for connection in snapshot:
            try:
                visitor(connection)
            except Exception:
                logger.exception("Visitor failed for connection %#x", id(connection))
        return len(snapshot)
