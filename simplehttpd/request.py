#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
HTTP Request Module for SimpleHTTPd
-----------------------------------
Reads raw bytes off a client socket, finds the end of the header block and
turns the request line, headers and body into a Request object.
"""

import select
import socket
import logging
import urllib.parse
from collections.abc import MutableMapping

from .utils import parse_query_string

HEADER_TERMINATOR = b'\r\n\r\n'
DEFAULT_HTTP_VERSION = 'HTTP/1.1'


class FramingError(Exception):
    """The connection did not yield a complete, well-formed request head."""


class Headers(MutableMapping):
    """
    Ordered header mapping with case-insensitive names.

    Names are compared by their lowercased form. Setting a name that is
    already present (in any casing) replaces its value and the stored
    spelling but keeps its original position.
    """

    def __init__(self, items=None):
        self._store = {}
        if items:
            self.update(items)

    def __setitem__(self, name, value):
        self._store[name.lower()] = (name, value)

    def __getitem__(self, name):
        return self._store[name.lower()][1]

    def __delitem__(self, name):
        del self._store[name.lower()]

    def __iter__(self):
        return (name for name, _ in self._store.values())

    def __len__(self):
        return len(self._store)

    def __contains__(self, name):
        return isinstance(name, str) and name.lower() in self._store

    def __repr__(self):
        return f"Headers({dict(self.items())!r})"


class Request:
    """
    A parsed HTTP request.

    Built once per connection by RequestFramer and not modified afterwards.
    """

    __slots__ = ('_method', '_raw_target', '_path', '_query', '_headers', '_body', '_version')

    def __init__(self, method, raw_target, path, query=None, headers=None, body=b'', version=DEFAULT_HTTP_VERSION):
        self._method = method
        self._raw_target = raw_target
        self._path = path
        self._query = dict(query or {})
        self._headers = Headers(headers or {})
        self._body = bytes(body)
        self._version = version

    @property
    def method(self):
        return self._method

    @property
    def raw_target(self):
        return self._raw_target

    @property
    def path(self):
        return self._path

    @property
    def query(self):
        return self._query

    @property
    def headers(self):
        return self._headers

    @property
    def body(self):
        return self._body

    @property
    def version(self):
        return self._version

    @property
    def body_text(self):
        """Body decoded as UTF-8 for log output."""
        return self._body.decode('utf-8', 'replace')

    def __repr__(self):
        return f"<Request {self._method} {self._raw_target} {self._version}>"


class RequestFramer:
    """
    Frames a single HTTP request from a connected socket.

    The socket's timeout bounds every individual read. A timeout, an
    oversized header block, a malformed request line or a connection that
    closes before the header block ends are all framing failures: the
    framer reports them by returning None from read_request().
    """

    def __init__(self, client_socket, buffer_size=8192, max_header_size=64 * 1024, cancel_event=None):
        """
        Args:
            client_socket: Connected socket with its timeout already set
            buffer_size: Size of each recv() call
            max_header_size: Ceiling for the request line plus headers
            cancel_event: Shutdown signal; once set, a connection with no
                request bytes pending is dropped
        """
        self.sock = client_socket
        self.buffer_size = buffer_size
        self.max_header_size = max_header_size
        self.cancel_event = cancel_event
        self.logger = logging.getLogger('RequestFramer')

    def read_request(self):
        """
        Read and parse one request.

        Returns:
            Request: The parsed request, or None on a framing failure
        """
        try:
            head, leftover = self._read_head()
            request = self._parse_head(head)
            if request.method.upper() == 'POST':
                content_length = self._content_length(request.headers.get('Content-Length'))
                if content_length is not None:
                    body = self._read_body(leftover, content_length)
                    request = Request(
                        request.method, request.raw_target, request.path,
                        request.query, request.headers, body, request.version
                    )
            return request
        except socket.timeout:
            self.logger.debug("Timed out while reading request")
            return None
        except FramingError as e:
            self.logger.debug(f"Framing failure: {e}")
            return None

    def _read_head(self):
        buf = bytearray()
        while True:
            end = buf.find(HEADER_TERMINATOR)
            if end != -1:
                if end > self.max_header_size:
                    raise FramingError(f"header block exceeds {self.max_header_size} bytes")
                return bytes(buf[:end]), bytes(buf[end + len(HEADER_TERMINATOR):])

            if len(buf) > self.max_header_size:
                raise FramingError(f"header block exceeds {self.max_header_size} bytes")

            if not buf and self._cancelled_while_idle():
                raise FramingError("server is shutting down")

            chunk = self.sock.recv(self.buffer_size)
            if not chunk:
                raise FramingError("connection closed before end of headers")
            buf.extend(chunk)

    def _cancelled_while_idle(self):
        # A connection whose request bytes are already waiting is still served
        if self.cancel_event is None or not self.cancel_event.is_set():
            return False
        readable, _, _ = select.select([self.sock], [], [], 0)
        return not readable

    def _parse_head(self, head):
        lines = head.decode('utf-8', 'replace').split('\r\n')

        parts = lines[0].split(' ')
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise FramingError(f"malformed request line {lines[0]!r}")

        method, target = parts[0], parts[1]
        version = parts[2] if len(parts) > 2 and parts[2] else DEFAULT_HTTP_VERSION

        raw_path, _, raw_query = target.partition('?')
        path = urllib.parse.unquote(raw_path)
        query = parse_query_string(raw_query)

        headers = Headers()
        for line in lines[1:]:
            idx = line.find(':')
            if idx <= 0:
                continue
            headers[line[:idx].strip()] = line[idx + 1:].strip()

        return Request(method, target, path, query, headers, b'', version)

    @staticmethod
    def _content_length(value):
        if value is None:
            return None
        value = value.strip()
        if not value.isascii() or not value.isdigit():
            return None
        return int(value)

    def _read_body(self, leftover, content_length):
        body = bytearray(leftover[:content_length])
        while len(body) < content_length:
            chunk = self.sock.recv(min(self.buffer_size, content_length - len(body)))
            if not chunk:
                # Partial bodies are delivered as-is
                self.logger.debug(f"Connection closed after {len(body)} of {content_length} body bytes")
                break
            body.extend(chunk)
        return bytes(body)
