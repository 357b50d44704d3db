import os
import socket

import pytest

from tinyhttpd.tcp import (
    PeerClosed,
    WouldBlock,
    create_server,
    recv_chunk,
    send_all,
    set_nonblocking,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_send_then_receive(pair):
    a, b = pair
    send_all(a, b"GET / HTTP/1.1\r\n\r\n")
    assert recv_chunk(b, 1024) == b"GET / HTTP/1.1\r\n\r\n"


def test_receive_respects_size(pair):
    a, b = pair
    send_all(a, b"abcdef")
    assert recv_chunk(b, 4) == b"abcd"
    assert recv_chunk(b, 4) == b"ef"


def test_receive_from_closed_peer_raises(pair):
    a, b = pair
    a.close()
    with pytest.raises(PeerClosed):
        recv_chunk(b, 16)


def test_nonblocking_receive_without_data_would_block(pair):
    _, b = pair
    set_nonblocking(b)
    assert b.getblocking() is False
    with pytest.raises(WouldBlock):
        recv_chunk(b, 16)


def test_set_nonblocking_accepts_descriptor(pair):
    _, b = pair
    set_nonblocking(b.fileno())
    assert os.get_blocking(b.fileno()) is False


def test_receive_rejects_non_positive_size(pair):
    _, b = pair
    with pytest.raises(ValueError):
        recv_chunk(b, 0)


def test_send_to_closed_peer_raises(pair):
    a, b = pair
    b.close()
    with pytest.raises(PeerClosed):
        send_all(a, b"hello")


def test_create_server_binds_and_accepts():
    server = create_server("0")
    try:
        assert server.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
        port = server.getsockname()[1]
        assert port > 0
        server.listen()
        host = "::1" if server.family == socket.AF_INET6 else "127.0.0.1"
        with socket.create_connection((host, port), timeout=2) as client:
            conn, _ = server.accept()
            with conn:
                send_all(client, b"ping")
                assert recv_chunk(conn, 16) == b"ping"
    finally:
        server.close()


def test_create_server_sets_stream_type():
    server = create_server(0)
    try:
        assert server.type == socket.SOCK_STREAM
        assert server.family in (socket.AF_INET, socket.AF_INET6)
    finally:
        server.close()


def test_create_server_rejects_unknown_port():
    with pytest.raises(socket.gaierror):
        create_server("not-a-port-name")