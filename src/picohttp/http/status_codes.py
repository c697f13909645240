"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on a status line:

    ┌────────┬──────────────────────┬──────────────────────────────────┐
    │  Code  │ Phrase               │ Emitted by                       │
    ├────────┼──────────────────────┼──────────────────────────────────┤
    │  101   │ Switching Protocols  │ nobody (defined for handlers)    │
    │  200   │ OK                   │ request.send / send_json         │
    │  400   │ Bad Request          │ connection loop, malformed input │
    │  404   │ NOT FOUND            │ connection loop, no route        │
    │  413   │ Payload Too Large    │ connection loop, body over limit │
    └────────┴──────────────────────┴──────────────────────────────────┘

The 404 phrase is upper case on purpose: "HTTP/1.1 404 NOT FOUND" is the
literal status line clients of this server have always received.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes as an IntEnum.

    Behaves like an int (``HTTPStatus.OK == 200``) and knows its reason
    phrase:

        >>> HTTPStatus.OK.phrase
        'OK'
        >>> str(HTTPStatus.NOT_FOUND)
        '404 NOT FOUND'
    """

    SWITCHING_PROTOCOLS = 101
    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    PAYLOAD_TOO_LARGE = 413

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400

    def __str__(self) -> str:
        return f"{self.value} {self.phrase}"


_STATUS_PHRASES = {
    HTTPStatus.SWITCHING_PROTOCOLS: "Switching Protocols",
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
}
