"""Server-sent event streaming with per-client time ticks and broadcast fan-out."""

__version__ = "1.0.0"
