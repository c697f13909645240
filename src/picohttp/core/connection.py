"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket for the lifetime of one request.

    accept() ──► Connection ──► parse ──► handler ──► send_response ──► close
                     │
                     └── owned by the HTTPRequest while the handler runs

The socket is used through two views:

    reader   socket.makefile("rb"), a buffered stream the parser pulls
             lines and exact byte counts from
    socket   sendall() for the response bytes

There are no read timeouts: a client that promises a body and never sends
it blocks the (single-threaded) server. That is a known limit of this
design, not something the connection tries to paper over.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """
    Where a connection is in its single request/response cycle.

        NEW → PARSING → DISPATCHING → RESPONDING → CLOSED
                  │                                  ▲
                  └──────────── (parse error) ───────┘
    """

    NEW = "new"                  # Just accepted
    PARSING = "parsing"          # Reading the request off the socket
    DISPATCHING = "dispatching"  # Handler (or 404 fallback) is running
    RESPONDING = "responding"    # Writing response bytes
    CLOSED = "closed"            # Socket released


@dataclass
class Connection:
    """
    An accepted client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current ConnectionState.
        created_at: Accept timestamp.
        bytes_sent: Total response bytes written.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking reads, no timeout.
        self.socket.setblocking(True)

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary stream over the socket (created on first use)."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    def send_response(self, data: bytes) -> None:
        """
        Write response bytes to the client.

        Uses sendall() so the whole response goes out or an error is
        raised. Failures are NOT swallowed here: the OSError reaches the
        connection loop, which logs it and drops the connection.

        Raises:
            OSError: If the client has gone away.
        """
        self.state = ConnectionState.RESPONDING
        self.socket.sendall(data)
        self.bytes_sent += len(data)

    def close(self, drain: bool = False) -> None:
        """
        Close the connection.

        shutdown(SHUT_WR) first so the client sees a clean end of stream
        after the response, then release the file descriptors.

        Args:
            drain: Read and discard what the client still has in flight
                   before closing. Needed after rejecting a request
                   half-way: closing with unread data makes the kernel
                   send RST, and the client may lose our error response.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already disconnected

        if drain:
            try:
                self.socket.settimeout(DRAIN_TIMEOUT)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass  # Timed out or reset; closing anyway

        if self._reader is not None:
            self._reader.close()
            self._reader = None

        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"[{self.id}] Error closing socket: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
