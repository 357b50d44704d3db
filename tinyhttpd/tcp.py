"""Listening socket setup and thin send/receive helpers."""

from __future__ import annotations

import errno
import os
import socket
import struct

_RECV_TIMEOUT_USEC = 50_000


class WouldBlock(Exception):
    """The socket has no data ready; try again later."""


class PeerClosed(ConnectionError):
    """The other end has closed the connection."""


def create_server(port: int | str) -> socket.socket:
    """Bind a stream socket to ``port`` on every local address and return it.

    Raises ``socket.gaierror`` if the port cannot be resolved and ``OSError``
    if no address could be bound.
    """
    results = socket.getaddrinfo(
        None, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
    )
    timeout = struct.pack("ll", 0, _RECV_TIMEOUT_USEC)
    for family, socktype, proto, _, address in results:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            continue
        try:
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, timeout)
        except OSError:
            sock.close()
            raise
        try:
            sock.bind(address)
        except OSError:
            sock.close()
            continue
        return sock
    raise OSError(f"could not bind to port {port}")


def recv_chunk(sock: socket.socket, size: int) -> bytes:
    """Receive up to ``size`` bytes.

    Raises ``WouldBlock`` when nothing is ready and ``PeerClosed`` when the
    peer has closed; other socket errors propagate.
    """
    if size <= 0:
        raise ValueError("size must be positive")
    try:
        data = sock.recv(size)
    except BlockingIOError as exc:
        raise WouldBlock() from exc
    if not data:
        raise PeerClosed("peer closed the connection")
    return data


def send_all(sock: socket.socket, data: bytes) -> None:
    """Send all of ``data``; raise ``PeerClosed`` if the peer is gone."""
    flags = getattr(socket, "MSG_NOSIGNAL", 0)
    try:
        sock.sendall(data, flags)
    except OSError as exc:
        if exc.errno in (errno.EPIPE, errno.ENOTCONN):
            raise PeerClosed(str(exc)) from exc
        raise


def set_nonblocking(sock: socket.socket | int) -> None:
    """Put a socket or raw descriptor into non-blocking mode."""
    if isinstance(sock, int):
        os.set_blocking(sock, False)
    else:
        sock.setblocking(False)