"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Everything that can go wrong while serving ONE connection:

    HTTPParseError                  The bytes on the wire are not a request
    ├── EmptyRequest                we can serve.
    ├── MalformedRequestLine
    ├── UnknownMethod
    ├── MissingHeaderSeparator
    ├── InvalidContentLength
    ├── UnsupportedTransferEncoding
    ├── TruncatedBody
    ├── LineTooLong
    └── PayloadTooLarge

    DispatchError                   The request was fine, the handler
    └── HandlerFailed               raised.

Stream read/write failures are plain OSError, as raised by the socket.

All of these are caught at the connection loop boundary, logged, and the
connection is closed. None of them ever stops the server.

Every parse error carries the HTTP status code the server answers with.
A status_code of None means "send nothing": the peer is already gone
(EmptyRequest, TruncatedBody) so there is nobody to read a response.

=============================================================================
"""

from typing import Optional


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Attributes:
        status_code: HTTP status to answer with, or None to close silently.
    """

    status_code: Optional[int] = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class EmptyRequest(HTTPParseError):
    """The client connected and closed without sending anything."""

    status_code = None

    def __init__(self, message: str = "Connection closed before request line"):
        super().__init__(message)


class MalformedRequestLine(HTTPParseError):
    """The request line is not ``METHOD SP TARGET SP VERSION``."""

    def __init__(self, line: str):
        super().__init__(f"Malformed request line: {line!r}")
        self.line = line


class UnknownMethod(HTTPParseError):
    """The method token is not one of the eight supported verbs."""

    def __init__(self, text: str):
        super().__init__(f"Unknown method: {text!r}")
        self.text = text


class MissingHeaderSeparator(HTTPParseError):
    """A header line has no ``": "`` separator."""

    def __init__(self, line: str):
        super().__init__(f"Header line without ': ' separator: {line!r}")
        self.line = line


class InvalidContentLength(HTTPParseError):
    """Content-Length is not a non-negative decimal integer."""

    def __init__(self, value: str):
        super().__init__(f"Invalid Content-Length: {value!r}")
        self.value = value


class UnsupportedTransferEncoding(HTTPParseError):
    """Transfer-Encoding without Content-Length; only length framing is supported."""

    def __init__(self, value: str):
        super().__init__(f"Unsupported Transfer-Encoding: {value!r}")
        self.value = value


class TruncatedBody(HTTPParseError):
    """The stream closed before Content-Length body bytes arrived."""

    status_code = None

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Truncated body: expected {expected} bytes, got {received}"
        )
        self.expected = expected
        self.received = received


class LineTooLong(HTTPParseError):
    """A request or header line exceeded the configured limit."""

    def __init__(self, limit: int):
        super().__init__(f"Line exceeds {limit} bytes")
        self.limit = limit


class PayloadTooLarge(HTTPParseError):
    """The declared body is larger than the configured limit."""

    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request body too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class DispatchError(Exception):
    """Base class for failures after a request was routed."""


class HandlerFailed(DispatchError):
    """
    A handler raised while serving a request.

    The original exception is kept as ``cause`` (and as ``__cause__`` when
    raised with ``raise ... from``).
    """

    def __init__(self, cause: BaseException):
        super().__init__(f"Handler failed: {cause!r}")
        self.cause = cause
