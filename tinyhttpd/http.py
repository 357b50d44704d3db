"""HTTP request handling: parsing, static files and the worker loop."""

from __future__ import annotations

import contextlib
import os
import re
import selectors
import socket
import threading
from collections.abc import Iterator
from typing import BinaryIO

from tinyhttpd.hash_table import HashTable
from tinyhttpd.log import print_with_id
from tinyhttpd.messages import (
    CLIENT_BUF_SIZE,
    REQ_HTTP_VERSION_SIZE,
    REQ_METHOD_SIZE,
    REQ_PATH_SIZE,
    HTTPRequest,
    HTTPResponse,
)
from tinyhttpd.state import ProcessData, State, UserState
from tinyhttpd.string_view import StringView
from tinyhttpd.tcp import WouldBlock, recv_chunk, send_all, set_nonblocking

CHUNK_SIZE = 512
BUFFER_CHUNK_SIZE = 512
JSON_BUF_SIZE = 512
MAX_EVENTS = 10
MAX_WORKERS = 3
MAX_CONTENT_LENGTH = 8000
PUBLIC_ROOT = "public"

_SELECT_TIMEOUT = 0.1

RECEIVED_BODY = '{"success": true,"message": "We recieved your data!"}'
FAILURE_BODY = '{"error": "Failed to handle request","success": false}'

_CONTENT_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".webp": "image/webp",
}
_DEFAULT_CONTENT_TYPE = "application/octet-stream"

_STATUS_TEXT = {
    200: "OK",
    201: "Created",
    204: "No content",
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    409: "Conflict",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}

_ESCAPE = re.compile(r"%([0-9A-Fa-f])([0-9A-Fa-f])|\+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class RequestError(Exception):
    """A request could not be read, parsed or answered."""


class UnsafePath(RequestError):
    """A request path was rejected as unsafe to serve."""


def content_type_for(path: str) -> str:
    """Return the content type implied by the extension after the last dot."""
    dot = path.rfind(".")
    if dot == -1:
        return _DEFAULT_CONTENT_TYPE
    return _CONTENT_TYPES.get(path[dot:], _DEFAULT_CONTENT_TYPE)


def status_text(code: int) -> str:
    """Return the reason phrase for an HTTP status code."""
    return _STATUS_TEXT.get(code, "Unknown")


def hex_digit(char: str) -> int:
    """Return the value of one hexadecimal digit; raise ``ValueError`` otherwise."""
    if len(char) == 1:
        if "0" <= char <= "9":
            return ord(char) - ord("0")
        if "a" <= char <= "f":
            return ord(char) - ord("a") + 10
        if "A" <= char <= "F":
            return ord(char) - ord("A") + 10
    raise ValueError(f"not a hexadecimal digit: {char!r}")


def decode_url(text: str) -> str:
    """Decode ``%XX`` escapes and ``+`` in a URL path.

    Each escape becomes the character with that code point (one byte per
    character). Raises ``ValueError`` on a malformed escape.
    """
    if _BAD_ESCAPE.search(text):
        raise ValueError(f"malformed percent escape in {text!r}")

    def replace(match: re.Match) -> str:
        if match.group(0) == "+":
            return " "
        return chr(hex_digit(match.group(1)) << 4 | hex_digit(match.group(2)))

    return _ESCAPE.sub(replace, text)


def sanitize_path(path: str) -> str:
    """Return ``path`` if it is safe to serve, else raise ``UnsafePath``."""
    if "/.." in path:
        raise UnsafePath(f"path climbs out of the root: {path!r}")
    if " " in path:
        raise UnsafePath(f"path contains a space: {path!r}")
    if "//" in path:
        raise UnsafePath(f"path contains an empty segment: {path!r}")
    if not path.startswith("/"):
        raise UnsafePath(f"path is not absolute: {path!r}")
    return path


def _path_bytes(text: str) -> bytes:
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        return text.encode("utf-8")


def open_public_file(path: str, root: str = PUBLIC_ROOT) -> tuple[str, BinaryIO]:
    """Open the file a request path names under ``root``.

    Returns the decoded path (``/`` becomes ``/index.html``) and the open
    binary file. Raises ``RequestError`` for a malformed path, ``UnsafePath``
    for a rejected one and ``OSError`` if the file cannot be opened.
    """
    print(f"Path: {path}", flush=True)
    try:
        decoded = decode_url(path)
    except ValueError as exc:
        raise RequestError(str(exc)) from exc
    decoded = decoded.split("\0", 1)[0]
    if decoded == "/":
        decoded = "/index.html"
    sanitize_path(decoded)
    target = os.path.join(os.fsencode(root), _path_bytes(decoded[1:]))
    return decoded, open(target, "rb")


def json_response(status: int, body: str) -> bytes:
    """Build a complete ``Connection: close`` JSON response."""
    message = (
        f"HTTP/1.1 {status} {status_text(status)}\r\n"
        "Content-Type: application/json\r\n"
        "Connection: close\r\n"
        "\r\n"
        f"{body}"
    ).encode("utf-8")
    return message[: JSON_BUF_SIZE - 1]


def send_json_response(sock: socket.socket, status: int, body: str) -> None:
    """Send a JSON response, ignoring a connection that has gone away."""
    with contextlib.suppress(OSError):
        send_all(sock, json_response(status, body))


def _read_chunks(stream: BinaryIO, size: int) -> Iterator[bytes]:
    while True:
        try:
            chunk = stream.read(size)
        except OSError:
            return
        if not chunk:
            return
        yield chunk


def stream_file(
    sock: socket.socket,
    request: HTTPRequest,
    response: HTTPResponse,
    stream: BinaryIO,
) -> None:
    """Send ``stream`` as a chunked response and close both it and our side.

    The stream is always closed; send failures raise ``OSError``.
    """
    try:
        header = (
            f"HTTP/1.1 {response.status} {status_text(response.status)}\r\n"
            f"Content-Type: {content_type_for(request.path)}\r\n"
            "Transfer-Encoding: chunked\r\n"
            "Connection: keep-alive\r\n"
            "\r\n"
        )
        send_all(sock, header.encode("latin-1"))
        for chunk in _read_chunks(stream, BUFFER_CHUNK_SIZE - 2):
            send_all(sock, f"{len(chunk):x}\r\n".encode("ascii") + chunk + b"\r\n")
    finally:
        stream.close()
    send_all(sock, b"0\r\n\r\n")
    with contextlib.suppress(OSError):
        sock.shutdown(socket.SHUT_WR)


def parse_request_line(request: HTTPRequest, line: str) -> None:
    """Fill in method, path and version from the request line.

    Raises ``RequestError`` if the path is too long.
    """
    rest = StringView(line)
    method = rest.split(" ")
    path = rest.split(" ")
    if len(path) >= REQ_PATH_SIZE:
        raise RequestError("request path too long")
    request.method = str(method)[: REQ_METHOD_SIZE - 1]
    request.path = str(path)
    request.http_version = str(rest)[: REQ_HTTP_VERSION_SIZE - 1]


def _strtol(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_headers(request: HTTPRequest) -> int:
    """Parse the received header block into ``request.headers``.

    Only lines ended by CRLF within the block (before the blank line) are
    read. Returns the number of headers stored.
    """
    headers = HashTable()
    request.headers = headers
    text = bytes(request.header_storage[: request.bs_size]).decode("latin-1")
    last_line = 0
    end = text.find("\r\n")
    while end != -1:
        start = 0 if last_line == 0 else last_line + 2
        line = text[start:end]
        if last_line == 0:
            try:
                parse_request_line(request, line)
            except RequestError:
                break
        else:
            value = StringView(line)
            key = value.split(":")
            if len(key) == 0:
                end = text.find("\r\n", end + 1)
                continue
            key.trim(" ")
            value.trim(" ")
            name, content = str(key), str(value)
            if name == "Content-Length":
                request.content_length = _strtol(content)
            headers.set(name, content)
        last_line = end
        end = text.find("\r\n", end + 1)
    return len(headers)


def receive_header(sock: socket.socket, request: HTTPRequest) -> None:
    """Read until the blank line ending the header has arrived.

    Raises ``WouldBlock`` when no data is ready (call again later) and
    ``RequestError`` if the header is too large or the connection fails.
    """
    storage = request.header_storage
    while True:
        remaining = CLIENT_BUF_SIZE - len(storage)
        if remaining <= 0:
            raise RequestError("request header too large")
        try:
            chunk = recv_chunk(sock, remaining)
        except OSError as exc:
            raise RequestError("connection failed while reading header") from exc
        storage += chunk
        request.recv_count = len(storage)
        end = storage.find(b"\r\n\r\n")
        if end != -1:
            request.bs_size = end
            request.body_start = end + 4
            request.body_length = request.recv_count - end - 4
            return


def move_body(request: HTTPRequest) -> None:
    """Start the body buffer with the body bytes read along with the header.

    Raises ``RequestError`` if the declared length is over the limit, missing,
    or already covered by what has been read.
    """
    if request.content_length >= MAX_CONTENT_LENGTH - CLIENT_BUF_SIZE:
        raise RequestError("content length over limit")
    if request.content_length == 0 or request.content_length <= request.body_length:
        raise RequestError("no body left to receive")
    start = request.body_start
    request.body = bytearray(request.header_storage[start : start + request.body_length])


def receive_body(sock: socket.socket, request: HTTPRequest) -> None:
    """Read body bytes until ``content_length`` have arrived.

    A connection that ends early keeps what was read, unless nothing was.
    Raises ``WouldBlock`` when no data is ready and ``RequestError`` on failure.
    """
    if request.body is None:
        raise RequestError("body buffer not prepared")
    while request.body_length < request.content_length:
        try:
            chunk = recv_chunk(sock, request.content_length - request.body_length)
        except OSError as exc:
            if request.body_length == 0:
                raise RequestError("failed to receive body") from exc
            break
        request.body += chunk
        request.body_length += len(chunk)


def handle_get_request(
    sock: socket.socket,
    request: HTTPRequest,
    response: HTTPResponse,
    root: str = PUBLIC_ROOT,
) -> None:
    """Serve the file a GET request names."""
    path, stream = open_public_file(request.path, root)
    request.path = path
    stream_file(sock, request, response, stream)


def handle_request(
    sock: socket.socket,
    ident: int,
    user_state: UserState,
    root: str = PUBLIC_ROOT,
) -> None:
    """Advance a connection's state machine until it is finished.

    Raises ``WouldBlock`` when more data must arrive first (the state is kept)
    and ``RequestError`` when the request fails.
    """
    if user_state.over_retry_limit():
        print_with_id(f"Too many retries for client: {user_state.client_fd}", ident)
        raise RequestError("too many retries")

    request = user_state.http_request
    response = user_state.http_response
    while user_state.state is not State.FIN:
        state = user_state.state
        if state is State.HEADERS:
            receive_header(sock, request)
            if parse_headers(request) == 0:
                raise RequestError("no headers found")
            user_state.state = State.GET if request.method == "GET" else State.MOVE_BODY
        elif state is State.GET:
            try:
                handle_get_request(sock, request, response, root)
            except (RequestError, OSError) as exc:
                print_with_id("Failed to handle GET request", ident)
                if isinstance(exc, RequestError):
                    raise
                raise RequestError(str(exc)) from exc
            user_state.state = State.FIN
        elif state is State.MOVE_BODY:
            move_body(request)
            user_state.state = State.BODY
        elif state is State.BODY:
            try:
                receive_body(sock, request)
            except RequestError:
                print_with_id("Failed to handle POST request", ident)
                raise
            user_state.state = State.RESPONSE
        elif state is State.RESPONSE:
            send_json_response(sock, response.status, RECEIVED_BODY)
            user_state.state = State.FIN
        elif state is State.ERROR:
            response.status = 501
            raise RequestError("request entered the error state")
        else:
            print_with_id("Failed to find state", ident)
            raise RequestError(f"unknown state: {state!r}")


class HttpWorker:
    """Serves connections that become ready on the shared selector."""

    def __init__(self, shared: ProcessData, root: str = PUBLIC_ROOT) -> None:
        self.shared = shared
        self.root = root
        self.ident = threading.get_native_id()
        self.stop_event = threading.Event()

    def _rearm(self, sock: socket.socket) -> None:
        selector = self.shared.selector
        if selector is None:
            return
        with self.shared.lock, contextlib.suppress(KeyError, ValueError, OSError):
            selector.register(sock, selectors.EVENT_READ)

    def _forget(self, sock: socket.socket) -> None:
        selector = self.shared.selector
        if selector is None:
            return
        with self.shared.lock, contextlib.suppress(KeyError, ValueError):
            selector.unregister(sock)

    def handle_client(self, sock: socket.socket) -> bool:
        """Handle a readable client socket.

        Returns ``True`` once the connection is answered and closed, ``False``
        when it waits for more data.
        """
        shared = self.shared
        fd = sock.fileno()
        with shared.lock:
            user_state = shared.user_states.get(fd)
            if user_state is None:
                user_state = UserState(fd)
                shared.user_states.set(fd, user_state)

        with user_state.mutex:
            if user_state.speed.start == 0:
                user_state.speed.mark_start()
            user_state.http_response.status = 200
            try:
                handle_request(sock, self.ident, user_state, self.root)
            except WouldBlock:
                user_state.retries += 1
                self._rearm(sock)
                return False
            except (RequestError, OSError):
                send_json_response(sock, 500, FAILURE_BODY)
            user_state.speed.mark_end()
            print_with_id(user_state.speed.describe(), self.ident)

        with shared.lock:
            shared.user_states.remove(fd)
        user_state.release()
        self._forget(sock)
        sock.close()
        return True

    def _accept(self) -> None:
        shared = self.shared
        try:
            client, _ = shared.server_socket.accept()
        except OSError:
            return
        try:
            set_nonblocking(client)
        except OSError:
            print_with_id("blocking", self.ident)
        with shared.lock:
            shared.selector.register(client, selectors.EVENT_READ)

    def run(self) -> None:
        """Accept and serve connections until ``stop_event`` is set."""
        shared = self.shared
        if shared.selector is None or shared.server_socket is None:
            raise ValueError("worker needs a listening socket and a selector")
        self.ident = threading.get_native_id()
        print_with_id("Worker Started", self.ident)
        while not self.stop_event.is_set():
            try:
                events = shared.selector.select(timeout=_SELECT_TIMEOUT)
            except OSError:
                continue
            for key, _ in events:
                if key.fileobj is shared.server_socket:
                    self._accept()
                    continue
                sock = key.fileobj
                with shared.lock:
                    try:
                        shared.selector.unregister(sock)
                    except (KeyError, ValueError):
                        continue
                self.handle_client(sock)
        print_with_id("Worker Exiting", self.ident)