"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket and hands accepted connections, one at a time,
to a callback.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a TCP socket
    2. bind()      Reserve IP:PORT (port 0 lets the OS pick)
    3. listen()    Start queueing incoming connections
    4. accept()    Take the next client, get a NEW socket for it
    5. close()     Release the listening socket on shutdown

=============================================================================
ONE CONNECTION AT A TIME
=============================================================================

    ┌──────────┐    ┌───────────┐    ┌──────────────────────┐
    │  accept  │───►│ callback  │───►│ back to accept       │
    └──────────┘    │ (serve +  │    └──────────────────────┘
         ▲          │  close)   │               │
         └──────────┴───────────┴───────────────┘

The callback runs on the accepting thread. While it runs, further clients
wait in the kernel's backlog queue. There is no thread pool and no async
I/O: the server is strictly sequential.

=============================================================================
FAILURE SEMANTICS
=============================================================================

- An OSError from accept() while running is FATAL: it is logged and
  re-raised to whoever called start().
- The callback is expected to contain its own errors. Whatever it lets
  escape propagates too, there is no catch-all here.
- accept() uses a 1 second timeout purely so shutdown() can stop the
  loop. That timeout is not inherited by accepted connections.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Sequential TCP accept loop.

    Usage:
        def handle_connection(conn: Connection):
            ...  # serve and close

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Provides host, port and backlog. The socket itself is
                    created in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening / once the loop has stopped
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before start() this is the configured address. Afterwards it is
        what the OS actually assigned, which matters for port 0.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small responses should go out immediately
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Turn SIGTERM/SIGINT into a graceful shutdown.

        Python only allows installing signal handlers from the main thread,
        so this is skipped when the server runs in a background thread
        (tests, embedding applications).
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop. BLOCKS until shutdown().

        Args:
            connection_handler: Called with each accepted Connection. It
                                must serve and close the connection before
                                returning.

        Raises:
            OSError: If binding fails or accept() fails while running.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Poll tick: re-check _running
                continue
            except OSError as e:
                if not self._running:
                    break  # Listening socket closed by shutdown()
                logger.error(f"Accept error: {e}")
                raise

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(socket=client_socket, address=client_address)
            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop. Safe to call from any thread, more than once.

        The loop notices within ACCEPT_POLL_INTERVAL seconds; a connection
        being served at that moment is finished first.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
