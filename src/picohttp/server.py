"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: routes are registered on the server, listen()
binds the socket, and every accepted connection goes through exactly one
request/response cycle.

=============================================================================
CONNECTION LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Idle ──► Accepting ──► Parsing ──► Dispatching ──► Responding ─┐  │
    │    ▲                        │              │                      │  │
    │    │                        │ parse error  │ no route: 404        │  │
    │    │                        ▼              ▼                      │  │
    │    └──────────────────── close connection ◄───────────────────────┘  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

1. SocketServer accepts one connection and calls handle_connection().
2. The request is parsed straight off the socket.
3. The router is asked for an exact (path, method) match.
4. Match: the handler gets the request (and with it the connection) and
   writes its own response. No match: the server writes the configured
   404 response.
5. The connection is closed and the socket server accepts the next one.

=============================================================================
ERROR CONTAINMENT
=============================================================================

Anything that goes wrong while serving ONE connection (parse errors,
handler exceptions, broken pipes) is logged and ends that connection only.
The only errors that stop listen() are failures of the listening socket
itself.

    Parse error          → 4xx response (or silent close), log WARNING
    EmptyRequest         → silent close, log DEBUG
    TruncatedBody        → silent close, log WARNING
    Handler raised       → HandlerFailed, log ERROR with traceback
    Write failed         → log ERROR, connection dropped
    accept() failed      → propagates out of listen()

=============================================================================
"""

import logging
import time
from typing import Optional, Union

from .access_log import AccessLogger
from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer
from .http import (
    EmptyRequest,
    HandlerFailed,
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    Method,
    RequestParser,
    Router,
    not_found,
)
from .http.router import Handler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Single-threaded HTTP/1.1 server, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080))

        @server.get("/hello")
        def hello(request):
            request.send("hi")

        def echo(request):
            request.send(request.body)

        server.post("/echo", echo)
        server.add_method(Method.PUT, "/items", store.put)

        server.listen()  # Blocks

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Routing table to serve. A fresh one by default.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._router = router or Router()
        self._parser = RequestParser(
            max_line_size=self.config.max_line_size,
            max_body_size=self.config.max_body_size,
        )
        self._socket_server = SocketServer(self.config)
        self._access_logger = AccessLogger(log_format=self.config.log_format)

        self._running = False

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port) while listening, configured address otherwise."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================
    #
    # Each method works two ways:
    #
    #     server.get("/hello", hello)       # direct
    #
    #     @server.get("/hello")             # decorator
    #     def hello(request): ...
    #
    # =========================================================================

    def add_method(self, method: Union[Method, str], path: str, handler: Optional[Handler] = None):
        """Register a handler for any method."""
        if handler is None:
            return self._router.route(path, method)
        return self._router.register(method, path, handler)

    def get(self, path: str, handler: Optional[Handler] = None):
        """Register a GET handler."""
        return self.add_method(Method.GET, path, handler)

    def post(self, path: str, handler: Optional[Handler] = None):
        """Register a POST handler."""
        return self.add_method(Method.POST, path, handler)

    def route(self, path: str, method: Union[Method, str]):
        return self._router.route(path, method)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def listen(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Bind and serve connections until shutdown(). BLOCKS.

        The routing table is frozen first; registering routes afterwards
        raises RuntimeError.

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the listening socket cannot be bound or accept()
                     fails. Per-connection errors never get here.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.config.validate()

        self._setup_logging()
        self._router.freeze()

        for path, method in self._router.routes():
            logger.debug(f"Route: {method.token:8} {path}")

        self._running = True
        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(self.handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting. The connection being served, if any, finishes first."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until listen() has stopped accepting. Returns False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("picohttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle_connection(self, conn: Connection):
        """
        Serve exactly one request on conn, then close it.

        Never raises for problems with this connection; they are logged.
        Works with anything shaped like Connection (tests use an in-memory
        stand-in).
        """
        started = time.perf_counter()
        request: Optional[HTTPRequest] = None
        drain = False

        try:
            request = self._read_request(conn)
            if request is None:
                drain = True
                return
            self._dispatch(conn, request)

        except HandlerFailed as e:
            logger.error(f"[{conn.id}] {e}", exc_info=e.cause)

        except OSError as e:
            logger.error(f"[{conn.id}] I/O error: {e}")

        except Exception:
            logger.exception(f"[{conn.id}] Unexpected error while serving connection")

        finally:
            conn.close(drain=drain)
            if request is not None and self.config.access_log:
                self._log_access(conn, request, started)

    def _read_request(self, conn: Connection) -> Optional[HTTPRequest]:
        """
        Parse the request, handling parse errors here.

        Returns:
            The request, or None if the connection should just be closed.
        """
        conn.state = ConnectionState.PARSING

        try:
            return self._parser.parse(conn.reader, connection=conn, client_address=conn.address)

        except EmptyRequest:
            logger.debug(f"[{conn.id}] Client closed before sending a request")

        except HTTPParseError as e:
            logger.warning(f"[{conn.id}] Rejected request from {conn.address[0]}: {e}")
            if e.status_code is not None and self.config.error_responses:
                self._send_error(conn, HTTPStatus(e.status_code))

        return None

    def _dispatch(self, conn: Connection, request: HTTPRequest):
        conn.state = ConnectionState.DISPATCHING

        handler = self._router.lookup(request.method, request.path)
        if handler is None:
            logger.debug(f"[{conn.id}] No route for {request.method} {request.path}")
            request.respond(not_found(self.config.not_found_body))
            return

        try:
            handler(request)
        except OSError:
            raise
        except Exception as e:
            raise HandlerFailed(e) from e

        if not request.responded:
            logger.warning(
                f"[{conn.id}] Handler for {request.method} {request.path} "
                f"returned without sending a response"
            )

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Write a canned error response; used before any handler ran."""
        if status == HTTPStatus.BAD_REQUEST:
            body = self.config.bad_request_body
        else:
            body = f"{status.value} {status.phrase}"

        response = HTTPResponse(status, body)
        response.add_header("Connection", "close")
        conn.send_response(response.serialize())

    def _log_access(self, conn: Connection, request: HTTPRequest, started: float):
        status = request.response_status
        self._access_logger.log(
            conn_id=conn.id,
            method=request.method.token,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.get_header("user-agent", "-"),
            status_code=int(status) if status is not None else None,
            bytes_sent=conn.bytes_sent,
            duration_ms=(time.perf_counter() - started) * 1000,
        )


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server instance.

    Example:
        app = create_app(ServerConfig(port=3000))
        app.get("/", lambda request: request.send("Hello!"))
        app.listen()
    """
    return HTTPServer(config)
