#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
HTTP Response Module for SimpleHTTPd
------------------------------------
Serializes status line, headers and body onto a client socket, gzip-encoding
the body when both the client and the content type allow it.
"""

import os
import gzip

from .request import DEFAULT_HTTP_VERSION
from .utils import is_compressible, format_http_date

# HTTP status codes with descriptions
HTTP_STATUS = {
    200: 'OK',
    403: 'Forbidden',
    404: 'Not Found',
    501: 'Not Implemented',
}


def accepts_gzip(accept_encoding):
    """Whether an Accept-Encoding header value advertises gzip."""
    return accept_encoding is not None and 'gzip' in accept_encoding.lower()


class ResponseWriter:
    """
    Writes one complete response to a client socket.

    Headers are emitted in insertion order. The body is always framed by a
    Content-Length matching the bytes actually written; for gzip responses
    that is the length of the encoded body.
    """

    def __init__(self, client_socket, version=DEFAULT_HTTP_VERSION, server_name=None,
                 buffer_size=8192, compression_level=1):
        """
        Args:
            client_socket: Connected socket; its timeout bounds each write
            version: Protocol token echoed from the request line
            server_name: Value for the Server header (omitted when None)
            buffer_size: Chunk size used when streaming files
            compression_level: gzip level, 1 (fastest) to 9 (smallest)
        """
        self.sock = client_socket
        self.version = version or DEFAULT_HTTP_VERSION
        self.server_name = server_name
        self.buffer_size = buffer_size
        self.compression_level = compression_level

    def status_line(self, status_code):
        status_message = HTTP_STATUS.get(status_code, 'Unknown')
        return f"{self.version} {status_code} {status_message}\r\n"

    def send_headers(self, status_code, headers):
        """
        Send the status line and header block.

        Args:
            status_code: HTTP status code
            headers: Ordered mapping of header name to value
        """
        headers = dict(headers)
        headers.setdefault('Date', format_http_date())
        if self.server_name:
            headers.setdefault('Server', self.server_name)
        headers.setdefault('Connection', 'close')

        head = self.status_line(status_code)
        head += "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        head += "\r\n"
        self.sock.sendall(head.encode('utf-8'))

    def send_bytes(self, status_code, content_type, body):
        """
        Send an uncompressed in-memory body.

        Args:
            status_code: HTTP status code
            content_type: Value for the Content-Type header
            body: Response body (bytes or str, str is UTF-8 encoded)
        """
        if isinstance(body, str):
            body = body.encode('utf-8')

        self.send_headers(status_code, {
            'Content-Type': content_type,
            'Content-Length': str(len(body)),
        })
        self.sock.sendall(body)

    def send_file(self, status_code, file_path, content_type, accept_encoding=None):
        """
        Send a file from disk.

        The body is gzip-encoded when the client's Accept-Encoding contains
        gzip and the content type is compression-eligible; otherwise the
        file is streamed verbatim.

        Args:
            status_code: HTTP status code
            file_path: Absolute path of the file to send
            content_type: Value for the Content-Type header
            accept_encoding: The request's Accept-Encoding value, if any

        Returns:
            bool: True if the body was gzip-encoded
        """
        compress = accepts_gzip(accept_encoding) and is_compressible(content_type)

        with open(file_path, 'rb') as f:
            if compress:
                encoded = gzip.compress(f.read(), compresslevel=self.compression_level)
                self.send_headers(status_code, {
                    'Content-Type': content_type,
                    'Content-Encoding': 'gzip',
                    'Vary': 'Accept-Encoding',
                    'Content-Length': str(len(encoded)),
                })
                self.sock.sendall(encoded)
                return True

            size = os.fstat(f.fileno()).st_size
            self.send_headers(status_code, {
                'Content-Type': content_type,
                'Content-Length': str(size),
            })
            sent = 0
            while sent < size:
                chunk = f.read(min(self.buffer_size, size - sent))
                if not chunk:
                    break
                self.sock.sendall(chunk)
                sent += len(chunk)
            if sent != size:
                raise OSError(f"{file_path} shrank while being sent ({sent} of {size} bytes)")
            return False
