"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

A response is a status, a set of headers and a body, serialized to the
exact bytes that go back on the connection.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                 ← Status line
    Content-Length: 2\r\n               ← Always first, always computed
    Content-Type: text/plain\r\n        ← Added headers, insertion order
    \r\n                                ← Empty line (separator)
    hi                                  ← Body bytes

Two framing rules are enforced by the model itself:

1. Content-Length is DERIVED from the body. It cannot be set through
   add_header(), so a response can never lie about its own length.

2. add_header() is first-write-wins. Once a key is present a later call
   with the same key (in any casing) is ignored.

Headers live in a plain dict, which keeps insertion order, so serialize()
is byte-for-byte deterministic.

=============================================================================
"""

from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


PROTOCOL = "HTTP/1.1"
CRLF = "\r\n"


class HTTPResponse:
    """
    An HTTP response ready to be written to a connection.

    Usage:
        response = HTTPResponse(HTTPStatus.OK, "hi")
        response.add_header("Content-Type", "text/plain")
        conn.send_response(response.serialize())

    Attributes:
        protocol: Always "HTTP/1.1".
        status: Response status.
        body: Body bytes (str input is UTF-8 encoded).
    """

    protocol = PROTOCOL

    def __init__(
        self,
        status: HTTPStatus = HTTPStatus.OK,
        body: Union[str, bytes] = b"",
    ):
        self.status = HTTPStatus(status)
        self.body = _to_bytes(body)
        self._headers: Dict[str, str] = {}

    @property
    def headers(self) -> Dict[str, str]:
        """Copy of the added headers (Content-Length is not among them)."""
        return dict(self._headers)

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.protocol} {self.status.value} {self.status.phrase}"

    def has_header(self, key: str) -> bool:
        """Case-insensitive check for an added header."""
        wanted = key.lower()
        return any(name.lower() == wanted for name in self._headers)

    def add_header(self, key: str, value: str) -> "HTTPResponse":
        """
        Add a header unless it is already present.

        Content-Length is computed at serialization time and is silently
        ignored here. Returns self so calls can be chained.
        """
        if key.lower() == "content-length":
            return self
        if not self.has_header(key):
            self._headers[key] = value
        return self

    def serialize(self) -> bytes:
        """
        Render the response as wire bytes.

        Returns:
            Status line, Content-Length, added headers, blank line, body.
        """
        lines = [self.status_line, f"Content-Length: {len(self.body)}"]
        for name, value in self._headers.items():
            lines.append(f"{name}: {value}")

        head = CRLF.join(lines) + CRLF + CRLF
        return head.encode("utf-8", errors="surrogateescape") + self.body

    def __bytes__(self) -> bytes:
        return self.serialize()

    def __repr__(self) -> str:
        return (
            f"HTTPResponse(status={self.status.value}, "
            f"headers={self._headers!r}, body={len(self.body)} bytes)"
        )


def _to_bytes(body: Union[str, bytes]) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8", errors="surrogateescape")
    return bytes(body)


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK, optionally with a Content-Type."""
    response = HTTPResponse(HTTPStatus.OK, body)
    if content_type:
        response.add_header("Content-Type", content_type)
    return response


def not_found(body: Union[str, bytes] = "404") -> HTTPResponse:
    """404 NOT FOUND. The default body matches the server's built-in fallback."""
    return HTTPResponse(HTTPStatus.NOT_FOUND, body)


def bad_request(body: Union[str, bytes] = "400 Bad Request") -> HTTPResponse:
    """400 Bad Request, used for malformed requests."""
    return HTTPResponse(HTTPStatus.BAD_REQUEST, body)
