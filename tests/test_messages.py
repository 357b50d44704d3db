from tinyhttpd.hash_table import HashTable
from tinyhttpd.messages import HTTPRequest, HTTPResponse


def test_new_request_is_empty():
    request = HTTPRequest()
    assert request.headers is None
    assert request.body is None
    assert request.header_storage == bytearray()
    assert (request.method, request.path, request.http_version) == ("", "", "")
    assert request.content_length == 0
    assert request.body_length == 0


def test_requests_do_not_share_storage():
    first = HTTPRequest()
    second = HTTPRequest()
    first.header_storage.extend(b"GET / HTTP/1.1\r\n")
    assert second.header_storage == bytearray()


def test_clear_resets_everything():
    request = HTTPRequest()
    request.headers = HashTable()
    request.headers.set("Host", "example.com")
    request.header_storage.extend(b"POST /x HTTP/1.1\r\n\r\nabc")
    body = bytearray(b"abc")
    request.body = body
    request.method = "POST"
    request.path = "/x"
    request.http_version = "HTTP/1.1"
    request.content_length = 3
    request.recv_count = 25
    request.bs_size = 18
    request.body_length = 3
    request.body_start = 22

    request.clear()

    assert request == HTTPRequest()
    assert body == bytearray(3)


def test_response_status_defaults_and_updates():
    response = HTTPResponse()
    assert response.status == 0
    response.status = 404
    assert response == HTTPResponse(status=404)