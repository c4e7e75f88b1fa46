"""Fan-out of a single message to every registered stream."""

import logging
from typing import Any

from .connection import Connection
from .errors import ConnectionClosedError, EmptyMessageError
from .events import BroadcastEvent, epoch_ms
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


def is_empty_message(message: Any) -> bool:
    """
    True for null, false, "" and numeric zero.
    Empty arrays and objects count as a message.
    """
    if message is None or message is False:
        return True
    if isinstance(message, str):
        return message == ""
    if isinstance(message, (int, float)):
        # NaN compares unequal to itself
        return message == 0 or message != message
    return False


class BroadcastDispatcher:
    """Writes broadcast events to the connections of a registry."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def broadcast(self, message: Any) -> int:
        """
        Send `message` to every registered connection.

        Closed or failing connections are skipped and left in the registry;
        their sessions remove them.

        Returns:
            Number of connections targeted.
        """
        if is_empty_message(message):
            raise EmptyMessageError()

        event = BroadcastEvent(message=message, timestamp=epoch_ms())

        def deliver(connection: Connection) -> None:
            try:
                connection.write(event)
            except ConnectionClosedError:
                logger.debug("Skipping closed connection %#x", id(connection))

        targeted = self.registry.for_each(deliver)
        logger.info("Broadcast sent to %d client(s)", targeted)
        return targeted
