import json
import time

from streamcast.events import BroadcastEvent, ConnectionEvent, TimeEvent, format_sse


def test_connection_frame():
    frame = format_sse(ConnectionEvent())

    assert frame.startswith("data: ") and frame.endswith("\n\n")
    assert json.loads(frame[len("data: "):]) == {"type": "connection", "message": "Connected"}


def test_time_event_now():
    before = int(time.time() * 1000)
    event = TimeEvent.now()
    after = int(time.time() * 1000)

    assert event.type == "time"
    assert before <= event.timestamp <= after
    assert event.message


def test_broadcast_frame_is_single_line_json():
    frame = format_sse(BroadcastEvent(message="multi\nline", timestamp=1700000000000))

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    body = frame[len("data: "):-2]
    assert "\n" not in body
    assert json.loads(body) == {
        "type": "broadcast",
        "message": "multi\nline",
        "timestamp": 1700000000000,
    }
