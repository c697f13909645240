"""
=============================================================================
picohttp - A minimal HTTP/1.1 server core
=============================================================================

Parses one request per connection, routes it by exact (path, method) and
writes a correctly framed response.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         PACKAGE LAYOUT                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  picohttp/                                                           │
    │  ├── __init__.py        This file (public API)                       │
    │  ├── __main__.py        CLI: python -m picohttp                      │
    │  ├── server.py          HTTPServer, the connection loop              │
    │  ├── config.py          ServerConfig                                 │
    │  ├── access_log.py      Per-request access logging                   │
    │  │                                                                   │
    │  ├── core/              Networking                                   │
    │  │   ├── socket_server.py   Listening socket, accept loop            │
    │  │   └── connection.py      One accepted client                      │
    │  │                                                                   │
    │  └── http/              Protocol                                     │
    │      ├── method.py          Method enum                              │
    │      ├── status_codes.py    HTTPStatus                               │
    │      ├── errors.py          Parse / dispatch errors                  │
    │      ├── request.py         HTTPRequest, RequestParser               │
    │      ├── response.py        HTTPResponse                             │
    │      └── router.py          Router                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from picohttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080))

    @server.get("/hello")
    def hello(request):
        request.send("hi")

    server.listen()

=============================================================================
"""

from .config import ServerConfig
from .server import HTTPServer, create_app
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    HTTPParseError,
    DispatchError,
    HandlerFailed,
    Method,
    RequestParser,
    Router,
    parse_request,
)

__version__ = "0.1.0"
__all__ = [
    "HTTPServer",
    "ServerConfig",
    "create_app",
    "Method",
    "HTTPStatus",
    "HTTPRequest",
    "HTTPResponse",
    "RequestParser",
    "parse_request",
    "Router",
    "HTTPParseError",
    "DispatchError",
    "HandlerFailed",
]
