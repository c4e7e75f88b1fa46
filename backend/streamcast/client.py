#!/usr/bin/env python3
"""
Command line client for a running streamcast server.

Commands:
- health: print the server health report
- send:   broadcast a message to every connected stream
- listen: subscribe to the event stream and print each event
"""

import argparse
import json
import os
import sys
import time
from typing import Any, Dict, Iterable, Iterator, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_SERVER_URL = "http://localhost:3000"


def create_session_with_retry() -> requests.Session:
    """Create a requests session with retry logic."""
    session = requests.Session()

    retry_strategy = Retry(
        total=5,
        backoff_factor=1,  # exponential backoff: 1, 2, 4, 8, 16 seconds
        status_forcelist=[500, 502, 503, 504],
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


def wait_for_server(server_url: str, max_retries: int = 30, delay: float = 2.0) -> bool:
    """Wait for the server to answer its health check."""
    print(f"Waiting for server at {server_url}...")

    for attempt in range(max_retries):
        try:
            response = requests.get(f"{server_url}/health", timeout=5)
            if response.status_code == 200:
                print("Server is ready!")
                return True
        except requests.exceptions.RequestException:
            pass

        print(f"  Attempt {attempt + 1}/{max_retries} - Server not ready, waiting...")
        time.sleep(delay)

    print("Server did not become available in time.")
    return False


def get_health(session: requests.Session, server_url: str) -> Optional[Dict[str, Any]]:
    try:
        response = session.get(f"{server_url}/health", timeout=10)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        print(f"[ERROR] Health check failed: {e}")
        return None


def send_broadcast(
    session: requests.Session,
    server_url: str,
    message: Any,
) -> Optional[Dict[str, Any]]:
    """POST a broadcast. Returns the response body, or None on failure."""
    url = f"{server_url}/broadcast"

    try:
        response = session.post(url, json={"message": message}, timeout=10)
    except requests.exceptions.RequestException as e:
        print(f"[ERROR] Failed to send broadcast: {e}")
        return None

    if response.status_code >= 400:
        try:
            error = response.json().get("error", response.text)
        except ValueError:
            error = response.text
        print(f"[ERROR] Server rejected broadcast ({response.status_code}): {error}")
        return None

    return response.json()


def iter_events(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """
    Decode events from the lines of a text event stream.
    Blank lines, comments and non-data fields are skipped.
    """
    for line in lines:
        if not line or line.startswith(":"):
            continue
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        try:
            yield json.loads(payload)
        except json.JSONDecodeError:
            print(f"[WARN] Skipping malformed event: {payload!r}")


def listen(session: requests.Session, server_url: str, limit: Optional[int] = None) -> int:
    """Print events from the stream. Returns the number of events received."""
    received = 0
    with session.get(f"{server_url}/sse", stream=True, timeout=(5, None)) as response:
        response.raise_for_status()
        for event in iter_events(response.iter_lines(decode_unicode=True)):
            received += 1
            kind = event.get("type", "?")
            print(f"[{kind:>10}] {json.dumps(event.get('message'))}")
            if limit is not None and received >= limit:
                break
    return received


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Streamcast command line client")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("STREAM_SERVER_URL", DEFAULT_SERVER_URL),
        help=f"Server base URL (default: $STREAM_SERVER_URL or {DEFAULT_SERVER_URL})",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the server health check before running the command",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("health", help="Print the server health report")

    send = commands.add_parser("send", help="Broadcast a message")
    send.add_argument("message", type=str, help="Message text")
    send.add_argument("--repeat", type=int, default=1, help="Number of sends (default: 1)")
    send.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between repeated sends (default: 1.0)",
    )

    listen_cmd = commands.add_parser("listen", help="Print events from the stream")
    listen_cmd.add_argument("--limit", type=int, default=None, help="Stop after N events")

    return parser


def run(args: argparse.Namespace) -> int:
    server_url = args.url.rstrip("/")

    if args.wait and not wait_for_server(server_url):
        return 1

    session = create_session_with_retry()

    if args.command == "health":
        health = get_health(session, server_url)
        if health is None:
            return 1
        print(json.dumps(health, indent=2))
        return 0

    if args.command == "send":
        failures = 0
        for i in range(args.repeat):
            result = send_broadcast(session, server_url, args.message)
            if result is None:
                failures += 1
            else:
                print(f"Broadcast delivered to {result['clientsCount']} client(s)")
            if i + 1 < args.repeat:
                time.sleep(args.interval)
        return 1 if failures else 0

    if args.command == "listen":
        try:
            listen(session, server_url, limit=args.limit)
        except requests.exceptions.RequestException as e:
            print(f"[ERROR] Stream failed: {e}")
            return 1
        return 0

    return 1


def main() -> None:
    args = build_parser().parse_args()
    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(0)


if __name__ == "__main__":
    main()
