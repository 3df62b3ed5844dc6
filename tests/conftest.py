"""
pytest configuration and fixtures.
"""

import socket
import logging

import pytest

# Add project root to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simplehttpd import WebServer, ServerConfig, AccessLog
from helpers import FIXED_NOW


@pytest.fixture
def content_root(tmp_path) -> Path:
    """Content root holding a small static site."""
    root = tmp_path / "wwwroot"
    root.mkdir()
    (root / "index.html").write_bytes(b"<h1>Hi</h1>\n")
    (root / "style.css").write_bytes(b"body { color: #333; }\n" * 50)
    (root / "logo.png").write_bytes(bytes(range(256)) * 4)
    docs = root / "docs"
    docs.mkdir()
    (docs / "index.html").write_bytes(b"<p>docs</p>")
    return root


@pytest.fixture
def log_dir(tmp_path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def config(content_root: Path, log_dir: Path) -> ServerConfig:
    """Server configuration pointing at the temporary site."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        content_root=str(content_root),
        log_dir=str(log_dir),
        request_timeout=2.0,
        accept_timeout=0.1,
    )


@pytest.fixture
def access_log(log_dir: Path) -> AccessLog:
    """Access log with a fixed clock so the file name is predictable."""
    return AccessLog(str(log_dir), clock=lambda: FIXED_NOW)


@pytest.fixture
def socket_pair():
    """Connected (server_side, client_side) sockets."""
    server_side, client_side = socket.socketpair()
    server_side.settimeout(2.0)
    client_side.settimeout(5.0)
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


@pytest.fixture
def running_server(config: ServerConfig, access_log: AccessLog):
    """A WebServer listening on an ephemeral port."""
    server = WebServer(config, access_log=access_log)
    assert server.start()
    yield server
    server.shutdown()


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body
