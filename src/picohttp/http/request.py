"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request off a connection and turns it into an
HTTPRequest. The parser pulls bytes from a stream as it needs them instead
of waiting for the whole message first, so it knows exactly where the body
ends.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  POST /echo HTTP/1.1\r\n          ← Request line (3 tokens)          │
    │  ─┬── ──┬── ────┬───                                                 │
    │  Method Target  Version                                              │
    │                                                                      │
    │  Host: localhost:8080\r\n         ← Headers, "Key: Value"           │
    │  Content-Length: 5\r\n                                               │
    │  \r\n                             ← Empty line ends the headers      │
    │                                                                      │
    │  hello                            ← Exactly Content-Length bytes    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING ALGORITHM
=============================================================================

1. Request line: read one line, split on single spaces into exactly
   three tokens. The method must be one of the eight known verbs.

2. Headers: read lines until an empty line (or end of stream). Each line
   is split on the FIRST ": " only, so values may contain colons:

       Host: localhost:8080   →   "host" = "localhost:8080"

   Keys are lowercased, values are kept as sent. A repeated key keeps the
   last value. A line without ": " is rejected.

3. Body: only Content-Length framing is supported. We read exactly that
   many bytes, blocking until they arrive. If the client hangs up early
   the request is truncated and dropped. Transfer-Encoding without a
   Content-Length is rejected rather than read as an empty body.

Line terminators may be "\r\n" or a bare "\n".

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional, Union
import io
import json
import re

from .errors import (
    EmptyRequest,
    InvalidContentLength,
    LineTooLong,
    MalformedRequestLine,
    MissingHeaderSeparator,
    PayloadTooLarge,
    TruncatedBody,
    UnsupportedTransferEncoding,
)
from .method import Method
from .response import HTTPResponse
from .status_codes import HTTPStatus


DEFAULT_MAX_LINE_SIZE = 8192
DEFAULT_MAX_BODY_SIZE = 10 * 1024 * 1024  # 10 MB


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    The request owns the connection it arrived on. That connection is only
    used to write the one response for this request, through send(),
    send_json() or respond():

        def hello(request):
            request.send("hi")

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:          Method enum member (Method.GET, ...)
        path:            Request target exactly as sent ("/hello?x=1")
        version:         Protocol token from the request line
        headers:         Lowercase header name → value as sent
        body:            Raw body bytes (empty without Content-Length)
        client_address:  (ip, port) of the peer, for logging
        connection:      Where the response is written
        response_status: Status of the response written so far, or None

    =========================================================================
    """

    method: Method
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)
    connection: Optional[Any] = field(default=None, repr=False, compare=False)
    response_status: Optional[HTTPStatus] = field(default=None, compare=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_length(self) -> int:
        """Declared body length (0 when absent)."""
        return int(self.headers.get("content-length", 0))

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def json(self) -> Any:
        """
        Body parsed as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body.decode("utf-8"))

    @property
    def responded(self) -> bool:
        return self.response_status is not None

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Header value by name (any casing)."""
        return self.headers.get(name.lower(), default)

    def get_headers(self) -> Dict[str, str]:
        return self.headers

    # =========================================================================
    # RESPONDING
    # =========================================================================

    def respond(self, response: HTTPResponse) -> None:
        """
        Write a response on this request's connection.

        A connection carries exactly one response, so a second call is an
        error. Write failures (OSError) propagate to the caller.

        Raises:
            RuntimeError: If there is no connection or a response was
                          already written.
        """
        if self.connection is None:
            raise RuntimeError("Request has no connection to respond on")
        if self.responded:
            raise RuntimeError("A response was already sent for this request")

        self.connection.send_response(response.serialize())
        self.response_status = response.status

    def send(self, text: Union[str, bytes], status: HTTPStatus = HTTPStatus.OK) -> None:
        """Respond with a plain body (200 OK by default)."""
        self.respond(HTTPResponse(status, text))

    def send_json(self, data: Any, status: HTTPStatus = HTTPStatus.OK) -> None:
        """
        Respond with a JSON body and Content-Type: application/json.

        Strings and bytes are sent as already-encoded JSON text; any other
        value is serialized with json.dumps().
        """
        if not isinstance(data, (str, bytes)):
            data = json.dumps(data)
        response = HTTPResponse(status, data)
        response.add_header("Content-Type", "application/json")
        self.respond(response)


class RequestParser:
    """
    Parses one request from a binary stream.

    The stream only needs readline(limit) and read(n): a socket's
    makefile("rb") in the server, an io.BytesIO in tests.

    Usage:
        parser = RequestParser()
        request = parser.parse(conn.reader, connection=conn)
    """

    CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")

    def __init__(
        self,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ):
        """
        Args:
            max_line_size: Longest accepted request/header line in bytes.
            max_body_size: Largest accepted Content-Length.
        """
        self.max_line_size = max_line_size
        self.max_body_size = max_body_size

    def parse(
        self,
        reader: BinaryIO,
        connection: Optional[Any] = None,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read and parse one request.

        Args:
            reader: Binary stream positioned at the start of a request.
            connection: Handle the response will be written to.
            client_address: Peer (ip, port) for logging.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: One of its subclasses, see errors.py.
        """
        # =====================================================================
        # STEP 1: Request line
        # =====================================================================
        raw = self._read_line(reader)
        if not raw:
            raise EmptyRequest()

        method, path, version = self._parse_request_line(self._decode_line(raw))

        # =====================================================================
        # STEP 2: Headers
        # =====================================================================
        headers = self._parse_headers(reader)

        # =====================================================================
        # STEP 3: Body (Content-Length framing only)
        # =====================================================================
        body = self._read_body(reader, headers)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            connection=connection,
        )

    def _parse_request_line(self, line: str) -> tuple[Method, str, str]:
        """
        Split "METHOD SP TARGET SP VERSION" into its parts.

        Raises:
            MalformedRequestLine: Not exactly three non-empty tokens.
            UnknownMethod: Method token is not a supported verb.
        """
        tokens = line.split(" ")
        if len(tokens) != 3 or not all(tokens):
            raise MalformedRequestLine(line)

        method_token, path, version = tokens
        return Method.from_str(method_token), path, version

    def _parse_headers(self, reader: BinaryIO) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        while True:
            raw = self._read_line(reader)
            if not raw:
                break  # End of stream, no body can follow

            line = self._decode_line(raw)
            if not line:
                break  # Empty line: header/body separator

            if ": " not in line:
                raise MissingHeaderSeparator(line)

            key, value = line.split(": ", 1)
            headers[key.lower()] = value

        return headers

    def _read_body(self, reader: BinaryIO, headers: Dict[str, str]) -> bytes:
        value = headers.get("content-length")

        if value is None:
            if "transfer-encoding" in headers:
                raise UnsupportedTransferEncoding(headers["transfer-encoding"])
            return b""

        if not self.CONTENT_LENGTH_PATTERN.fullmatch(value):
            raise InvalidContentLength(value)

        length = int(value)
        if length > self.max_body_size:
            raise PayloadTooLarge(length, self.max_body_size)

        return _read_exact(reader, length)

    def _read_line(self, reader: BinaryIO) -> bytes:
        # The limit applies to the line content; up to two extra bytes
        # hold the terminator.
        raw = reader.readline(self.max_line_size + 2)
        if len(_strip_terminator(raw)) > self.max_line_size:
            raise LineTooLong(self.max_line_size)
        return raw

    @staticmethod
    def _decode_line(raw: bytes) -> str:
        # Bytes that are not valid UTF-8 survive as surrogates, so
        # line.encode("utf-8", "surrogateescape") gives back the wire bytes.
        return _strip_terminator(raw).decode("utf-8", errors="surrogateescape")


def _strip_terminator(raw: bytes) -> bytes:
    if raw.endswith(b"\r\n"):
        return raw[:-2]
    if raw.endswith(b"\n"):
        return raw[:-1]
    return raw


def _read_exact(reader: BinaryIO, length: int) -> bytes:
    """
    Read exactly length bytes, blocking until they arrive.

    Raises:
        TruncatedBody: The stream ended first.
    """
    chunks = []
    remaining = length
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            raise TruncatedBody(length, length - remaining)
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    connection: Optional[Any] = None,
    client_address: tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """
    Parse a request from raw bytes.

    Handy in tests and tools; the server parses straight from the socket.
    """
    return RequestParser().parse(io.BytesIO(data), connection, client_address)
