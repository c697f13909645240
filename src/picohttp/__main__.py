"""
=============================================================================
CLI ENTRY POINT
=============================================================================

Runs a small demo application on the server core:

    python -m picohttp                        # 127.0.0.1:8080
    python -m picohttp --port 3000
    python -m picohttp --log-level DEBUG --log-format json

    GET  /         plain-text greeting
    GET  /health   {"status": "ok", "uptime_seconds": ...}
    POST /echo     echoes the request body back

Defaults come from HTTP_* environment variables (see ServerConfig.from_env)
and are overridden by command-line flags.

=============================================================================
"""

import argparse
import sys
import time

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .http import HTTPRequest
from .server import HTTPServer


class HealthHandler:
    """GET /health: reports uptime since the handler was created."""

    def __init__(self):
        self.started_at = time.time()

    def __call__(self, request: HTTPRequest):
        request.send_json({
            "status": "ok",
            "uptime_seconds": round(time.time() - self.started_at, 3),
        })


def index(request: HTTPRequest):
    request.send("picohttp is running\n")


def echo(request: HTTPRequest):
    request.send(request.body)


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m picohttp",
        description="Minimal single-threaded HTTP/1.1 server",
    )
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"picohttp {__version__}",
    )
    return parser


def create_demo_server(config: ServerConfig) -> HTTPServer:
    server = HTTPServer(config)
    server.get("/", index)
    server.get("/health", HealthHandler())
    server.post("/echo", echo)
    return server


def main(argv=None) -> int:
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 2

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = create_demo_server(config)
        server.listen()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
