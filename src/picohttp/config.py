"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything tunable about the server lives in one dataclass, so nothing
user-visible is a hard-coded literal buried in the connection loop.

    ServerConfig()                  # Defaults below
    ServerConfig(port=3000)         # In code
    ServerConfig.from_env()         # From HTTP_* environment variables

=============================================================================
DEFAULT RESPONSES
=============================================================================

When no handler matches, the server answers:

    HTTP/1.1 404 NOT FOUND\r\n
    Content-Length: 3\r\n
    \r\n
    404

When a request cannot be parsed, it answers 400 Bad Request with
bad_request_body, unless error_responses is False, in which case the
connection is simply closed. Truncated requests are always closed
silently: the client already hung up.

=============================================================================
"""

import os
from dataclasses import dataclass


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK        host, port, backlog
    PARSING        max_line_size, max_body_size
    RESPONSES      not_found_body, bad_request_body, error_responses
    LOGGING        log_level, log_format, access_log

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Loopback by default."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """
    Accept queue length. Since connections are served one at a time,
    this is how many clients can wait while one is being served.
    """

    # ─────────────────────────────────────────────────────────────────────
    # PARSING LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 8192
    """Longest request line or header line, in bytes."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted."""

    # ─────────────────────────────────────────────────────────────────────
    # DEFAULT RESPONSES
    # ─────────────────────────────────────────────────────────────────────

    not_found_body: str = "404"
    """Body of the 404 NOT FOUND response sent when no route matches."""

    bad_request_body: str = "400 Bad Request"
    """Body of the 400 response sent for malformed requests."""

    error_responses: bool = True
    """
    True:  answer malformed requests with a 4xx response, then close.
    False: close the connection without writing anything.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    access_log: bool = True
    """Emit one access log line per served request."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HTTP_HOST        Server host (default: 127.0.0.1)
        HTTP_PORT        Server port (default: 8080)
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  Access log format (default: text)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Fail fast on impossible values.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_line_size < 16:
            raise ValueError("max_line_size must be >= 16")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Use 'text' or 'json'.")
