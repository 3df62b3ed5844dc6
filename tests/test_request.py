"""
Tests for request framing over a socket.
"""

import socket
import threading
import time

import pytest

from simplehttpd.request import RequestFramer, Request, Headers


def frame(socket_pair, *chunks, close=False, delay=0.0, **framer_kwargs):
    """Send chunks from the client side and frame them on the server side."""
    server_side, client_side = socket_pair

    def writer():
        for i, chunk in enumerate(chunks):
            if i and delay:
                time.sleep(delay)
            client_side.sendall(chunk)
        if close:
            client_side.shutdown(socket.SHUT_WR)

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        return RequestFramer(server_side, **framer_kwargs).read_request()
    finally:
        thread.join()


class TestHeaders:

    def test_case_insensitive_lookup(self):
        headers = Headers({"Content-Type": "text/html"})
        assert headers["content-type"] == "text/html"
        assert "CONTENT-TYPE" in headers
        assert headers.get("Accept-Encoding") is None

    def test_later_duplicate_overwrites_in_place(self):
        headers = Headers()
        headers["Host"] = "a"
        headers["Accept"] = "*/*"
        headers["host"] = "b"
        assert len(headers) == 2
        assert list(headers.items()) == [("host", "b"), ("Accept", "*/*")]

    def test_delete(self):
        headers = Headers({"X-One": "1"})
        del headers["x-one"]
        assert len(headers) == 0
        assert 42 not in headers


class TestRequestFramer:

    def test_get_with_query_and_headers(self, socket_pair, sample_get_request):
        request = frame(socket_pair, sample_get_request)

        assert request.method == "GET"
        assert request.raw_target == "/api/users?page=1&limit=10"
        assert request.path == "/api/users"
        assert request.query == {"page": "1", "limit": "10"}
        assert request.version == "HTTP/1.1"
        assert request.headers["host"] == "localhost:8080"
        assert request.headers["User-Agent"] == "pytest"
        assert request.body == b""

    def test_path_is_percent_decoded(self, socket_pair):
        request = frame(socket_pair, b"GET /docs/a%20b.html?x=%41 HTTP/1.0\r\n\r\n")
        assert request.path == "/docs/a b.html"
        assert request.raw_target == "/docs/a%20b.html?x=%41"
        assert request.query == {"x": "A"}
        assert request.version == "HTTP/1.0"

    def test_missing_version_defaults(self, socket_pair):
        request = frame(socket_pair, b"GET /\r\nHost: x\r\n\r\n")
        assert request.method == "GET"
        assert request.path == "/"
        assert request.version == "HTTP/1.1"

    def test_duplicate_headers_last_wins(self, socket_pair):
        request = frame(socket_pair, b"GET / HTTP/1.1\r\nX-Dup: first\r\nx-dup: second\r\n\r\n")
        assert request.headers["X-DUP"] == "second"
        assert len(request.headers) == 1

    def test_header_whitespace_trimmed_and_colon_in_value(self, socket_pair):
        request = frame(socket_pair, b"GET / HTTP/1.1\r\n  Host :   example.com:8080  \r\nnocolon\r\n\r\n")
        assert request.headers["Host"] == "example.com:8080"
        assert len(request.headers) == 1

    def test_method_case_is_preserved(self, socket_pair):
        request = frame(socket_pair, b"get / HTTP/1.1\r\n\r\n")
        assert request.method == "get"

    def test_head_split_across_reads(self, socket_pair):
        request = frame(
            socket_pair,
            b"GET /index.ht", b"ml HTTP/1.1\r\nHo", b"st: x\r\n", b"\r\n",
            delay=0.02
        )
        assert request.path == "/index.html"
        assert request.headers["Host"] == "x"

    def test_post_body_in_first_read(self, socket_pair, sample_post_request):
        request = frame(socket_pair, sample_post_request)
        assert request.method == "POST"
        assert request.body == b'{"name": "John", "email": "john@example.com"}'

    def test_post_body_in_two_writes(self, socket_pair):
        request = frame(
            socket_pair,
            b"POST /echo HTTP/1.1\r\nContent-Length: 5\r\n\r\nhe",
            b"llo",
            delay=0.05
        )
        assert request.body == b"hello"
        assert request.body_text == "hello"

    def test_post_body_sent_after_headers(self, socket_pair):
        request = frame(
            socket_pair,
            b"POST /echo HTTP/1.1\r\nContent-Length: 5\r\n\r\n",
            b"hello",
            delay=0.05
        )
        assert request.body == b"hello"

    def test_post_body_is_binary_safe(self, socket_pair):
        payload = bytes(range(256))
        request = frame(
            socket_pair,
            b"POST /upload HTTP/1.1\r\nContent-Length: 256\r\n\r\n" + payload[:100],
            payload[100:],
            delay=0.02
        )
        assert request.body == payload

    def test_bytes_beyond_content_length_are_dropped(self, socket_pair):
        request = frame(socket_pair, b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef")
        assert request.body == b"abc"

    def test_lowercase_post_reads_body(self, socket_pair):
        request = frame(socket_pair, b"post / HTTP/1.1\r\ncontent-length: 2\r\n\r\nok")
        assert request.body == b"ok"

    def test_early_close_delivers_partial_body(self, socket_pair):
        request = frame(
            socket_pair,
            b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabcd",
            close=True
        )
        assert request is not None
        assert request.body == b"abcd"

    @pytest.mark.parametrize("value", [b"abc", b"-5", b"1.5", b""])
    def test_unparseable_content_length_means_no_body(self, socket_pair, value):
        request = frame(socket_pair, b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\nxyz")
        assert request.body == b""

    def test_get_body_is_not_read(self, socket_pair):
        request = frame(socket_pair, b"GET / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc")
        assert request.body == b""

    def test_post_without_content_length(self, socket_pair):
        request = frame(socket_pair, b"POST / HTTP/1.1\r\n\r\nignored")
        assert request.body == b""

    @pytest.mark.parametrize("raw", [
        b"GARBAGE\r\n\r\n",
        b"\r\n\r\n",
        b" / HTTP/1.1\r\n\r\n",
        b"GET  HTTP/1.1\r\n\r\n",
    ])
    def test_malformed_request_line(self, socket_pair, raw):
        assert frame(socket_pair, raw) is None

    def test_connection_closed_before_headers_end(self, socket_pair):
        assert frame(socket_pair, b"GET / HTTP/1.1\r\nHost: x\r\n", close=True) is None

    def test_connection_closed_without_data(self, socket_pair):
        assert frame(socket_pair, close=True) is None

    def test_oversized_header_block(self, socket_pair):
        raw = b"GET / HTTP/1.1\r\nX-Big: " + b"a" * 4096
        assert frame(socket_pair, raw, max_header_size=1024, buffer_size=512) is None

    def test_oversized_header_block_with_terminator(self, socket_pair):
        raw = b"GET / HTTP/1.1\r\nX-Big: " + b"a" * 4096 + b"\r\n\r\n"
        assert frame(socket_pair, raw, max_header_size=1024, buffer_size=8192) is None

    def test_timeout_mid_headers(self, socket_pair):
        server_side, _ = socket_pair
        server_side.settimeout(0.2)
        assert frame(socket_pair, b"GET / HTTP/1.1\r\n") is None

    def test_timeout_mid_body(self, socket_pair):
        server_side, _ = socket_pair
        server_side.settimeout(0.2)
        assert frame(socket_pair, b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nab") is None

    def test_cancelled_before_any_bytes(self, socket_pair):
        cancel = threading.Event()
        cancel.set()
        started = time.monotonic()
        assert frame(socket_pair, cancel_event=cancel) is None
        assert time.monotonic() - started < 1.0

    def test_cancel_still_serves_pending_request(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        cancel = threading.Event()
        cancel.set()
        request = RequestFramer(server_side, cancel_event=cancel).read_request()
        assert request is not None
        assert request.path == "/"


class TestRequest:

    def test_attributes_are_read_only(self):
        request = Request("GET", "/", "/")
        with pytest.raises(AttributeError):
            request.method = "POST"

    def test_body_text_replaces_invalid_utf8(self):
        request = Request("POST", "/", "/", body=b"ok\xff")
        assert request.body_text == "ok�"
