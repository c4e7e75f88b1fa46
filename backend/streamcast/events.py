"""Pydantic models for the events pushed over the stream."""

import json
import time
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

CONNECTED_MESSAGE = "Connected"


def epoch_ms() -> int:
    """Current time as integer milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


class StreamEvent(BaseModel):
    """Base model for every event written to a stream."""
    type: str


class ConnectionEvent(StreamEvent):
    """First event on every stream, confirming the subscription."""
    type: Literal["connection"] = "connection"
    message: str = CONNECTED_MESSAGE


class TimeEvent(StreamEvent):
    """Periodic tick carrying the server clock."""
    type: Literal["time"] = "time"
    message: str  # locale formatted wall clock time
    timestamp: int

    @classmethod
    def now(cls) -> "TimeEvent":
        return cls(message=datetime.now().strftime("%X"), timestamp=epoch_ms())


class BroadcastEvent(StreamEvent):
    """Message fanned out to every connected client."""
    type: Literal["broadcast"] = "broadcast"
    message: Any
    timestamp: int


def format_sse(event: StreamEvent) -> str:
    """Encode an event as a single `data:` frame."""
    return f"data: {json.dumps(event.model_dump())}\n\n"
