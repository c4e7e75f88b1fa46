"""Exceptions raised by the streaming core."""


class StreamError(Exception):
    """Base class for streamcast errors."""


class ConnectionClosedError(StreamError):
    """Raised when writing to a connection that is no longer open."""


class EmptyMessageError(StreamError, ValueError):
    """Raised when a broadcast is requested without a message."""

    def __init__(self, detail: str = "Message must not be empty"):
        super().__init__(detail)
        self.detail = detail
