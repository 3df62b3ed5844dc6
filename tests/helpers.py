"""
Shared helpers for talking raw HTTP over sockets in tests.
"""

import socket
from datetime import datetime, timezone


FIXED_NOW = datetime(2026, 10, 17, 12, 30, 0, tzinfo=timezone.utc)


def read_all(sock, timeout=5.0):
    """Read from a socket until the peer closes it."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        try:
            chunk = sock.recv(65536)
        except ConnectionResetError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def parse_response(raw):
    """
    Split a raw response into (status_line, header_items, body).

    header_items keeps the order headers were sent in.
    """
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    header_items = []
    for line in lines[1:]:
        name, _, value = line.partition(":")
        header_items.append((name.strip(), value.strip()))
    return lines[0], header_items, body


def http_request(port, raw, host="127.0.0.1", timeout=5.0):
    """Send raw bytes to a running server and return the full response."""
    with socket.create_connection((host, port), timeout=timeout) as sock:
        sock.sendall(raw)
        return read_all(sock, timeout)
