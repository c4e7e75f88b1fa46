"""Inspection helpers shared by the test modules."""


def drain(connection):
    """Remove and return every frame queued on a connection."""
    frames = []
    while not connection._frames.empty():
        frame = connection._frames.get_nowait()
        if frame is not None:
            frames.append(frame)
    return frames


def pending(connection):
    """Number of items still queued on a connection."""
    return connection._frames.qsize()


def members(registry):
    """Current registry members, collected through the public iteration API."""
    seen = []
    registry.for_each(seen.append)
    return seen
