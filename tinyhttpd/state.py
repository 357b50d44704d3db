"""Per-connection state and the data shared between workers."""

from __future__ import annotations

import enum
import os
import selectors
import socket
import threading
import time

from tinyhttpd.hash_table import HashTable
from tinyhttpd.messages import HTTPRequest, HTTPResponse
from tinyhttpd.program_speed import ProgramSpeed

MAX_EPOLL_RETRIES = 3
DEADLINE_MS = 5000


def monotonic_ms() -> int:
    """Return the monotonic clock in whole milliseconds."""
    return time.monotonic_ns() // 1_000_000


class State(enum.IntEnum):
    """Steps a connection moves through while its request is handled."""

    HEADERS = 1
    MOVE_BODY = 2
    BODY = 3
    RESPONSE = 4
    GET = 5
    ERROR = 6
    FIN = 7


class UserState:
    """Progress of one client connection, kept between readiness events."""

    def __init__(self, client_fd: int) -> None:
        self.client_fd = client_fd
        self.retries = 0
        self.state: State | None = State.HEADERS
        self.deadline = monotonic_ms() + DEADLINE_MS
        self.http_request = HTTPRequest()
        self.http_response = HTTPResponse()
        self.speed = ProgramSpeed()
        self.mutex = threading.Lock()

    def is_expired(self, now_ms: int | None = None) -> bool:
        """True once ``now_ms`` (default: now) has reached the deadline."""
        if now_ms is None:
            now_ms = monotonic_ms()
        return now_ms >= self.deadline

    def over_retry_limit(self) -> bool:
        """True when the connection has been retried too often."""
        return self.retries >= MAX_EPOLL_RETRIES

    def release(self) -> None:
        """Reset the state and drop the request and response data."""
        self.retries = 0
        self.client_fd = 0
        self.state = None
        self.deadline = 0
        self.speed = ProgramSpeed()
        self.http_request.clear()
        self.http_response.status = 0

    def __repr__(self) -> str:
        return (
            f"UserState(client_fd={self.client_fd}, state={self.state!r}, "
            f"retries={self.retries})"
        )


class ProcessData:
    """What the server's workers share: the listener, selector and states."""

    def __init__(
        self,
        server_socket: socket.socket | None,
        selector: selectors.BaseSelector | None,
    ) -> None:
        self.server_socket = server_socket
        self.selector = selector
        self.pid = os.getpid()
        self.user_states = HashTable()
        self.lock = threading.Lock()
        self.ready = threading.Condition(self.lock)