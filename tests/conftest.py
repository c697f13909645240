"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from picohttp import HTTPServer, ServerConfig
from picohttp.core import ConnectionState
from picohttp.http import HTTPRequest


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1 HTTP/1.1\r\n"
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
        + body
    )


class FakeConnection:
    """
    In-memory stand-in for core.Connection.

    Reads come from the given bytes, writes are collected in ``sent``.
    """

    def __init__(self, data: bytes = b"", fail_writes: bool = False):
        self.id = "test0001"
        self.address = ("127.0.0.1", 50000)
        self.state = ConnectionState.NEW
        self.bytes_sent = 0
        self.reader = io.BytesIO(data)
        self.sent = bytearray()
        self.closed = False
        self.drained: Optional[bool] = None
        self.fail_writes = fail_writes

    def send_response(self, data: bytes) -> None:
        if self.fail_writes:
            raise BrokenPipeError("client went away")
        self.state = ConnectionState.RESPONDING
        self.sent += data
        self.bytes_sent += len(data)

    def close(self, drain: bool = False) -> None:
        self.closed = True
        self.drained = drain
        self.state = ConnectionState.CLOSED


@pytest.fixture
def make_connection():
    """Factory for FakeConnection objects."""
    return FakeConnection


@pytest.fixture
def server() -> HTTPServer:
    """Server instance that is never bound; drive it via handle_connection()."""
    return HTTPServer(ServerConfig(port=0, log_level="WARNING"))


class ServerThread:
    """Runs a real server on a free port in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.listen, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if not self.server.wait_for_shutdown(timeout=5.0):
            raise RuntimeError("Server failed to stop")
        if self._thread:
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, half_close: bool = False) -> bytes:
        """Send raw bytes, return everything the server writes back."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            if half_close:
                sock.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)


@pytest.fixture
def server_thread():
    """Factory for ServerThread objects."""
    return ServerThread


@pytest.fixture
def live_server() -> Generator[ServerThread, None, None]:
    """A listening server with a few routes."""
    server = HTTPServer(ServerConfig(host="127.0.0.1", port=0, log_level="WARNING"))

    @server.get("/hello")
    def hello(request: HTTPRequest):
        request.send("hi")

    @server.post("/echo")
    def echo(request: HTTPRequest):
        request.send_json({"received": request.json})

    @server.get("/boom")
    def boom(request: HTTPRequest):
        raise RuntimeError("handler exploded")

    thread = ServerThread(server)
    thread.start()

    yield thread

    thread.stop()
