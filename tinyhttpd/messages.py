"""Request and response records shared by the connection handlers."""

from __future__ import annotations

from dataclasses import dataclass, field

from tinyhttpd.hash_table import HashTable

REQ_METHOD_SIZE = 16
REQ_PATH_SIZE = 256
REQ_HTTP_VERSION_SIZE = 24
CLIENT_BUF_SIZE = 1024


@dataclass
class HTTPRequest:
    """Everything gathered about one incoming request.

    ``header_storage`` holds the raw bytes received while reading the header;
    ``body_start`` is the offset in it where body bytes begin, ``bs_size`` the
    length of the header block and ``body_length`` the body bytes held so far.
    """

    headers: HashTable | None = None
    header_storage: bytearray = field(default_factory=bytearray)
    body: bytearray | None = None
    body_start: int = 0
    method: str = ""
    path: str = ""
    http_version: str = ""
    content_length: int = 0
    recv_count: int = 0
    bs_size: int = 0
    body_length: int = 0

    def clear(self) -> None:
        """Drop headers, body and request line, returning to the empty state."""
        self.headers = None
        if self.body is not None:
            self.body[:] = bytes(len(self.body))
        self.body = None
        self.header_storage.clear()
        self.body_start = 0
        self.method = ""
        self.path = ""
        self.http_version = ""
        self.content_length = 0
        self.recv_count = 0
        self.bs_size = 0
        self.body_length = 0


@dataclass
class HTTPResponse:
    """The response being prepared for a request."""

    status: int = 0