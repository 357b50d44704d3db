# tinyhttpd

A small HTTP/1.1 server run by a few worker threads. It serves files from a
directory, `public/` by default, using chunked transfer encoding. It also reads
request bodies that carry a `Content-Length` and answers them with a JSON
acknowledgement.

## Behaviour

- A `GET` request is mapped onto a file below the served directory. A request
  for `/` serves `/index.html`. The file is sent with status 200 as a chunked
  response. Then the server shuts down its side and closes the connection.
- `%XX` escapes and `+` in the path are decoded before use. A malformed escape
  fails the request.
- Unsafe paths are refused. These are paths that contain `/..`, a space or
  `//`, and paths that do not start with `/`.
- The content type comes from the extension after the last dot:
  - `.html` is sent as `text/html`
  - `.css` is sent as `text/css`
  - `.js` is sent as `application/javascript`
  - `.json` is sent as `application/json`
  - `.png` is sent as `image/png`
  - `.jpg` is sent as `image/jpeg`
  - `.webp` is sent as `image/webp`
  - anything else is sent as `application/octet-stream`
- Any other method is treated as a request with a body.
  - The header, up to 1024 bytes, is read first.
  - The body must then still be incomplete. Its declared `Content-Length` must
    be above zero and below 6976 bytes.
  - The rest of the body is read, and the server replies with status 200 and
    `{"success": true,"message": "We recieved your data!"}`.
- Each connection has a 5 second deadline and at most 3 retries. A background
  sweep runs every 50 ms. It answers connections past either limit with
  `408 Request Timeout` and closes them.
- Any other failure is answered with `500` and
  `{"error": "Failed to handle request","success": false}`. This covers a
  missing file, a rejected path, an oversized header and a body that is out of
  range.
- Ctrl-C prints `SHUTDOWN SIGNAL: 2` and ends the process at once.

## Installing

```
pip install .
```

## Running

```
tinyhttpd 2222
```

The first argument is the port. An optional second argument names the
directory to serve instead of `public`:

```
tinyhttpd 2222 /srv/www
```

Started without a port, the command prints a usage message and exits with
status 1. It also exits with status 1 if the port cannot be bound.

## Using it as a library

```python
from tinyhttpd.http import content_type_for, decode_url, sanitize_path, status_text
from tinyhttpd.hash_table import HashTable
from tinyhttpd.string_view import StringView

content_type_for("/style.css")     # "text/css"
status_text(404)                   # "Not Found"
decode_url("/a%20b+c")             # "/a b c"
sanitize_path("/../etc")           # raises tinyhttpd.http.UnsafePath

table = HashTable()
table.set("Host", "localhost")
table.get("Host")                  # "localhost"

view = StringView("GET /index.html HTTP/1.1")
str(view.split(" "))               # "GET"
str(view)                          # "/index.html HTTP/1.1"
```

The modules are:

- `tinyhttpd.server`: `run_server(port, root)`, `reap_expired(shared, now_ms)`
  and the `main` command.
- `tinyhttpd.http`: request parsing, file streaming, `handle_request` and
  `HttpWorker`.
- `tinyhttpd.tcp`: `create_server`, `recv_chunk`, `send_all` and
  `set_nonblocking`, with the `WouldBlock` and `PeerClosed` exceptions.
- `tinyhttpd.state`: `UserState`, `ProcessData` and the `State` enum.
- `tinyhttpd.messages`: the `HTTPRequest` and `HTTPResponse` records.
- `tinyhttpd.hash_table`: `HashTable`, an open-addressing table keyed by `str`
  or `int`.
- `tinyhttpd.string_view`: `StringView`.
- `tinyhttpd.program_speed`: `ProgramSpeed` timing.
- `tinyhttpd.conn_queue`: `ConnectionQueue`, a blocking FIFO of descriptors.
- `tinyhttpd.log`: output tagged with an id.

## Limitations

- Request bodies are only received and acknowledged. Nothing is done with
  them.
- A body that arrives whole together with the header is answered with `500`.
- Connections are never reused, and there is no HTTPS.
- Only `GET` serves files. No other method reaches the served directory.

## Tests

```
pip install .[test]
pytest
```