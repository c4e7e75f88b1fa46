import socket
import threading
import time

import httpx
import pytest
import uvicorn

from streamcast.main import create_app
from streamcast.registry import ConnectionRegistry

STREAM_REQUEST = (
    b"GET /sse HTTP/1.1\r\n"
    b"Host: localhost\r\n"
    b"Accept: text/event-stream\r\n"
    b"\r\n"
)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


@pytest.fixture
def live_server():
    """Run the app on a real uvicorn server in a background thread."""
    registry = ConnectionRegistry()
    app = create_app(registry=registry, tick_interval=0.05)

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    server = uvicorn.Server(uvicorn.Config(app, log_level="warning"))
    thread = threading.Thread(target=server.run, kwargs={"sockets": [listener]}, daemon=True)
    thread.start()
    assert wait_until(lambda: server.started), "server did not start"

    yield port, registry

    server.should_exit = True
    thread.join(timeout=10)
    listener.close()


def open_stream(port):
    """Open a raw socket stream and read until the first event arrives."""
    client = socket.create_connection(("127.0.0.1", port), timeout=5)
    client.sendall(STREAM_REQUEST)

    received = b""
    while b'"type": "connection"' not in received:
        chunk = client.recv(4096)
        if not chunk:
            break
        received += chunk
    return client, received


def active_connections(port):
    return httpx.get(f"http://127.0.0.1:{port}/health").json()["activeConnections"]


def test_stream_over_real_socket(live_server):
    port, registry = live_server

    client, received = open_stream(port)
    try:
        head = received.lower()
        assert head.startswith(b"http/1.1 200")
        assert b"content-type: text/event-stream" in head
        assert b"cache-control: no-cache" in head
        assert b'data: {"type": "connection"' in received
    finally:
        client.close()


def test_socket_close_deregisters_connection(live_server):
    port, registry = live_server

    first, _ = open_stream(port)
    second, _ = open_stream(port)
    assert wait_until(lambda: active_connections(port) == 2)

    first.close()
    assert wait_until(lambda: active_connections(port) == 1)

    second.close()
    assert wait_until(lambda: active_connections(port) == 0)
    assert registry.size() == 0
