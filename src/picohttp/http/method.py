"""
=============================================================================
HTTP METHODS
=============================================================================

The closed set of request methods this server understands.

    OPTIONS  GET  HEAD  POST  PUT  DELETE  TRACE  CONNECT

The method token is the first word of the request line:

    GET /hello HTTP/1.1
    ─┬─
     └── Method.GET

Parsing is case-insensitive ("get", "GET" and "Get" are all GET) but only
over these eight verbs. Anything else is a parse error for that one
connection, never a crash of the whole server.

=============================================================================
"""

from enum import Enum

from .errors import UnknownMethod


class Method(Enum):
    """
    HTTP request method.

    Members are immutable singletons, so they are safe to use as part of a
    dictionary key (the router keys its table on ``(path, Method)``).

    Example:
        >>> Method.from_str("get")
        <Method.GET: 'GET'>
        >>> str(Method.POST)
        'POST'
    """

    OPTIONS = "OPTIONS"
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    TRACE = "TRACE"
    CONNECT = "CONNECT"

    @classmethod
    def from_str(cls, text: str) -> "Method":
        """
        Convert a method token to a Method (case-insensitive).

        Args:
            text: Method token as received, e.g. "GET" or "post".

        Returns:
            The matching Method member.

        Raises:
            UnknownMethod: If text is not one of the eight known verbs.
        """
        # Non-ASCII input is rejected up front: str.upper() maps some
        # non-ASCII letters onto ASCII ones ("ı" -> "I").
        if not isinstance(text, str) or not text.isascii():
            raise UnknownMethod(text)

        try:
            return cls[text.upper()]
        except KeyError:
            raise UnknownMethod(text) from None

    @property
    def token(self) -> str:
        """The exact uppercase verb as it appears on the wire."""
        return self.value

    def __str__(self) -> str:
        return self.value
