import os
import selectors

import pytest

from tinyhttpd.hash_table import HashTable
from tinyhttpd.messages import HTTPRequest
from tinyhttpd.state import (
    DEADLINE_MS,
    MAX_EPOLL_RETRIES,
    ProcessData,
    State,
    UserState,
    monotonic_ms,
)


def test_user_state_starts_at_first_declared_state():
    user = UserState(5)
    assert user.state == 1
    assert list(State)[0] is user.state
    assert State.FIN == 7
    assert [s.name for s in State] == [
        "HEADERS",
        "MOVE_BODY",
        "BODY",
        "RESPONSE",
        "GET",
        "ERROR",
        "FIN",
    ]


def test_monotonic_ms_does_not_go_backwards():
    first = monotonic_ms()
    second = monotonic_ms()
    assert second >= first


def test_new_user_state():
    before = monotonic_ms()
    user = UserState(7)
    after = monotonic_ms()
    assert user.client_fd == 7
    assert user.state is State.HEADERS
    assert user.retries == 0
    assert before + DEADLINE_MS <= user.deadline <= after + DEADLINE_MS
    assert DEADLINE_MS == 5000
    assert user.speed.start == 0 and user.speed.end == 0
    assert user.http_response.status == 0


def test_expiry_is_inclusive_of_deadline():
    user = UserState(3)
    assert user.is_expired(user.deadline)
    assert user.is_expired(user.deadline + 1)
    assert not user.is_expired(user.deadline - 1)


def test_fresh_state_is_not_expired_now():
    user = UserState(3)
    assert not user.is_expired()


@pytest.mark.parametrize(
    "retries, expected",
    [(0, False), (MAX_EPOLL_RETRIES - 1, False), (MAX_EPOLL_RETRIES, True), (MAX_EPOLL_RETRIES + 2, True)],
)
def test_retry_limit(retries, expected):
    user = UserState(4)
    user.retries = retries
    assert user.over_retry_limit() is expected


def test_release_clears_request_and_resets_fields():
    user = UserState(9)
    user.retries = 2
    user.http_request.method = "GET"
    user.http_request.path = "/index.html"
    user.http_response.status = 200
    user.speed.mark_start()

    user.release()

    assert user.client_fd == 0
    assert user.retries == 0
    assert user.state is None
    assert user.http_request == HTTPRequest()
    assert user.http_response.status == 0
    assert user.speed.start == 0


def test_mutex_guards_exclusively():
    user = UserState(1)
    with user.mutex:
        assert user.mutex.acquire(blocking=False) is False
    assert user.mutex.acquire(blocking=False) is True
    user.mutex.release()


def test_process_data_holds_shared_parts():
    selector = selectors.DefaultSelector()
    try:
        shared = ProcessData(None, selector)
        assert shared.selector is selector
        assert shared.server_socket is None
        assert shared.pid == os.getpid()
        assert isinstance(shared.user_states, HashTable) and len(shared.user_states) == 0
        with shared.ready:
            assert shared.lock.acquire(blocking=False) is False
    finally:
        selector.close()


def test_process_data_stores_user_states():
    shared = ProcessData(None, None)
    user = UserState(12)
    shared.user_states.set(12, user)
    assert shared.user_states.get(12) is user