"""Server start-up, the expiry sweep and the command-line entry point."""

from __future__ import annotations

import contextlib
import os
import selectors
import signal
import socket
import sys
import threading
import time

from tinyhttpd.http import MAX_WORKERS, PUBLIC_ROOT, HttpWorker, send_json_response
from tinyhttpd.log import print_with_id
from tinyhttpd.state import ProcessData, monotonic_ms
from tinyhttpd.tcp import create_server, set_nonblocking

SWEEP_INTERVAL = 0.05
TIMEOUT_BODY = '{"error": "Request timed out","success": false}'
USAGE = (
    "Server startup failed, try:\n\n"
    "<Server Name> <PORT>\n\n"
    "Example:\n\n"
    "tinyhttpd 2222\n"
)
_CLEAR_SCREEN = "\x1b[1;1H\x1b[2J"


def handle_sigint(signum, frame) -> None:
    """Report the signal and end the process at once."""
    print(f"SHUTDOWN SIGNAL: {int(signum)}", flush=True)
    os._exit(0)


def _take_socket(selector: selectors.BaseSelector | None, fd: int) -> socket.socket | None:
    """Unregister ``fd`` from the selector and return its socket, if registered."""
    if selector is None:
        return None
    try:
        key = selector.get_key(fd)
    except (KeyError, ValueError):
        return None
    with contextlib.suppress(KeyError, ValueError):
        selector.unregister(fd)
    return key.fileobj


def _answer_timeout(sock: socket.socket | None, fd: int, status: int) -> None:
    if sock is not None:
        send_json_response(sock, status, TIMEOUT_BODY)
        sock.close()
        return
    # The connection is being handled elsewhere; answer through a duplicate
    # descriptor and shut the connection down without closing theirs.
    try:
        duplicate = socket.socket(fileno=os.dup(fd))
    except OSError:
        return
    with duplicate:
        send_json_response(duplicate, status, TIMEOUT_BODY)
        with contextlib.suppress(OSError):
            duplicate.shutdown(socket.SHUT_RDWR)


def reap_expired(shared: ProcessData, now_ms: int | None = None) -> list[int]:
    """Time out connections past their deadline or retry limit.

    Each one is sent a 408 response, closed and dropped from the shared
    table. Returns the descriptors that were reaped.
    """
    if now_ms is None:
        now_ms = monotonic_ms()
    with shared.lock:
        expired = [
            fd
            for fd, user_state in shared.user_states.items()
            if user_state.is_expired(now_ms) or user_state.over_retry_limit()
        ]

    reaped = []
    for fd in expired:
        with shared.lock:
            user_state = shared.user_states.remove(fd)
            sock = _take_socket(shared.selector, fd) if user_state is not None else None
        if user_state is None:
            continue
        user_state.http_response.status = 408
        _answer_timeout(sock, fd, user_state.http_response.status)
        with user_state.mutex:
            user_state.speed.mark_end()
            print_with_id(user_state.speed.describe(), shared.pid)
        user_state.release()
        reaped.append(fd)
    return reaped


def run_server(port: int | str, root: str = PUBLIC_ROOT) -> None:
    """Listen on ``port``, serve files from ``root`` and sweep expired clients.

    Runs until interrupted. Raises ``OSError`` if the port cannot be bound.
    """
    server_socket = create_server(port)
    pid = os.getpid()
    try:
        server_socket.listen(socket.SOMAXCONN)
    except OSError:
        print_with_id("Failed to listen", pid)
        server_socket.close()
        raise
    set_nonblocking(server_socket)

    print(_CLEAR_SCREEN, end="", flush=True)
    print_with_id(f"Server listening on port {port}", pid)

    selector = selectors.DefaultSelector()
    selector.register(server_socket, selectors.EVENT_READ)
    shared = ProcessData(server_socket, selector)

    workers = [HttpWorker(shared, root) for _ in range(MAX_WORKERS)]
    threads = [threading.Thread(target=worker.run, daemon=True) for worker in workers]
    for thread in threads:
        thread.start()

    try:
        while True:
            reap_expired(shared)
            time.sleep(SWEEP_INTERVAL)
    finally:
        for worker in workers:
            worker.stop_event.set()
        for thread in threads:
            thread.join(timeout=1.0)
        selector.close()
        server_socket.close()


def main(argv: list[str] | None = None) -> int:
    """Start the server on the port given as the first argument."""
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        print(USAGE, end="", flush=True)
        return 1
    signal.signal(signal.SIGINT, handle_sigint)
    port = argv[0]
    root = argv[1] if len(argv) > 1 else PUBLIC_ROOT
    try:
        run_server(port, root)
    except OSError as exc:
        print(f"Server startup failed: {exc}", file=sys.stderr, flush=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())