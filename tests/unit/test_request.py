"""
Unit tests for HTTP request parsing.
"""

import io

import pytest

from picohttp.http import HTTPStatus, Method
from picohttp.http.errors import (
    EmptyRequest,
    InvalidContentLength,
    LineTooLong,
    MalformedRequestLine,
    MissingHeaderSeparator,
    PayloadTooLarge,
    TruncatedBody,
    UnknownMethod,
    UnsupportedTransferEncoding,
)
from picohttp.http.request import HTTPRequest, RequestParser, parse_request


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(io.BytesIO(sample_get_request), client_address=("127.0.0.1", 12345))

        assert request.method is Method.GET
        assert request.path == "/api/users?page=1"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body == b""

    def test_parse_headers(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.headers == {
            "host": "localhost:8080",
            "user-agent": "pytest",
            "accept": "application/json",
        }

    def test_header_value_keeps_colons_and_case(self):
        raw = b"GET / HTTP/1.1\r\nX-Trace: Abc:Def: Ghi\r\n\r\n"
        request = parse_request(raw)

        assert request.headers["x-trace"] == "Abc:Def: Ghi"

    def test_duplicate_header_last_wins(self):
        raw = b"GET / HTTP/1.1\r\nX-Id: first\r\nx-id: second\r\n\r\n"
        request = parse_request(raw)

        assert request.headers == {"x-id": "second"}

    def test_parse_post_with_body(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method is Method.POST
        assert request.get_header("Content-Type") == "application/json"
        assert request.json == {"name": "John", "email": "john@example.com"}

    def test_body_is_exactly_content_length_bytes(self):
        body = b"\x00\xffhello\r\n\r\nworld"
        raw = (
            b"PUT /blob HTTP/1.1\r\n"
            + f"Content-Length: {len(body)}\r\n".encode()
            + b"\r\n"
            + body
            + b"TRAILING GARBAGE"
        )
        reader = io.BytesIO(raw)
        request = RequestParser().parse(reader)

        assert request.body == body
        assert request.content_length == len(body)
        assert reader.read() == b"TRAILING GARBAGE"

    def test_zero_content_length(self):
        raw = b"POST /x HTTP/1.1\r\nContent-Length: 0\r\n\r\n"
        assert parse_request(raw).body == b""

    def test_no_content_length_means_empty_body(self):
        raw = b"POST /x HTTP/1.1\r\nHost: x\r\n\r\nignored"
        assert parse_request(raw).body == b""

    def test_bare_lf_terminators(self):
        raw = b"POST /x HTTP/1.1\nHost: x\nContent-Length: 2\n\nok"
        request = parse_request(raw)

        assert request.headers == {"host": "x", "content-length": "2"}
        assert request.body == b"ok"

    def test_headers_ending_at_eof(self):
        raw = b"GET / HTTP/1.1\r\nHost: x\r\n"
        request = parse_request(raw)

        assert request.headers == {"host": "x"}
        assert request.body == b""

    def test_path_is_not_decoded(self):
        raw = b"GET /a%20b/../c?q=1 HTTP/1.1\r\n\r\n"
        assert parse_request(raw).path == "/a%20b/../c?q=1"

    def test_non_utf8_bytes_are_preserved(self):
        request = parse_request(b"GET /caf\xe9 HTTP/1.1\r\nX-Name: caf\xe9\r\n\r\n")

        assert request.get_header("x-name").encode("utf-8", "surrogateescape") == b"caf\xe9"
        assert request.path.encode("utf-8", "surrogateescape") == b"/caf\xe9"

    def test_utf8_header_value(self):
        request = parse_request("GET / HTTP/1.1\r\nX-Name: café\r\n\r\n".encode("utf-8"))
        assert request.get_header("x-name") == "café"

    def test_lowercase_method_token(self):
        assert parse_request(b"post / HTTP/1.1\r\n\r\n").method is Method.POST

    def test_transfer_encoding_ignored_when_content_length_present(self):
        raw = b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\nContent-Length: 3\r\n\r\nabc"
        assert parse_request(raw).body == b"abc"

    def test_connection_is_attached(self):
        marker = object()
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n", connection=marker)
        assert request.connection is marker


class TestRequestParserErrors:
    """Tests for malformed input."""

    def test_empty_stream(self):
        with pytest.raises(EmptyRequest) as exc_info:
            parse_request(b"")
        assert exc_info.value.status_code is None

    @pytest.mark.parametrize("line", [
        b"GET\r\n",
        b"GET /\r\n",
        b"\r\n",
        b"GET  / HTTP/1.1\r\n",
        b"GET / HTTP/1.1 extra\r\n",
    ])
    def test_malformed_request_line(self, line):
        with pytest.raises(MalformedRequestLine) as exc_info:
            parse_request(line + b"Host: x\r\n\r\n")
        assert exc_info.value.status_code == 400

    def test_unknown_method(self):
        with pytest.raises(UnknownMethod) as exc_info:
            parse_request(b"FETCH /path HTTP/1.1\r\nHost: test\r\n\r\n")
        assert exc_info.value.text == "FETCH"

    @pytest.mark.parametrize("header", [b"Host:x", b"NoSeparatorHere", b"Host :x"])
    def test_missing_header_separator(self, header):
        with pytest.raises(MissingHeaderSeparator):
            parse_request(b"GET / HTTP/1.1\r\n" + header + b"\r\n\r\n")

    @pytest.mark.parametrize("value", [b"abc", b"-1", b"+5", b" 5", b"5 ", b"1.5", b""])
    def test_invalid_content_length(self, value):
        raw = b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n12345"
        with pytest.raises(InvalidContentLength):
            parse_request(raw)

    def test_truncated_body(self):
        raw = b"POST /upload HTTP/1.1\r\ncontent-length: 5\r\n\r\nabc"
        with pytest.raises(TruncatedBody) as exc_info:
            parse_request(raw)

        assert exc_info.value.expected == 5
        assert exc_info.value.received == 3
        assert exc_info.value.status_code is None

    def test_transfer_encoding_without_content_length(self):
        raw = b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n3\r\nabc\r\n0\r\n\r\n"
        with pytest.raises(UnsupportedTransferEncoding):
            parse_request(raw)

    def test_line_too_long(self):
        parser = RequestParser(max_line_size=32)
        raw = b"GET / HTTP/1.1\r\nX-Large: " + b"A" * 100 + b"\r\n\r\n"

        with pytest.raises(LineTooLong):
            parser.parse(io.BytesIO(raw))

    def test_line_at_limit_is_accepted(self):
        line = b"GET /" + b"a" * 22 + b" HTTP/1.1"
        parser = RequestParser(max_line_size=len(line))

        assert parser.parse(io.BytesIO(line + b"\r\n\r\n")).path == "/" + "a" * 22

    @pytest.mark.parametrize("terminator", [b"\r\n", b"\n"])
    def test_limit_does_not_count_terminator(self, terminator):
        """The same line content is accepted with either terminator."""
        header = b"X-Test: " + b"v" * 8
        parser = RequestParser(max_line_size=len(header))
        raw = b"GET / HTTP/1.1" + terminator + header + terminator + terminator

        assert parser.parse(io.BytesIO(raw)).get_header("x-test") == "v" * 8

    @pytest.mark.parametrize("terminator", [b"\r\n", b"\n"])
    def test_one_byte_over_limit(self, terminator):
        header = b"X-Test: " + b"v" * 9
        parser = RequestParser(max_line_size=len(header) - 1)
        raw = b"GET / HTTP/1.1" + terminator + header + terminator + terminator

        with pytest.raises(LineTooLong):
            parser.parse(io.BytesIO(raw))

    def test_payload_too_large(self):
        parser = RequestParser(max_body_size=4)
        raw = b"POST / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"

        with pytest.raises(PayloadTooLarge) as exc_info:
            parser.parse(io.BytesIO(raw))
        assert exc_info.value.status_code == 413


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        request = HTTPRequest(method=Method.GET, path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_get_headers(self):
        request = HTTPRequest(method=Method.GET, path="/", headers={"host": "x"})
        assert request.get_headers() == {"host": "x"}

    def test_text_decodes_body(self):
        request = HTTPRequest(method=Method.POST, path="/", body="héllo".encode("utf-8"))
        assert request.text == "héllo"

    def test_text_replaces_invalid_bytes(self):
        request = HTTPRequest(method=Method.POST, path="/", body=b"ok\xff")
        assert request.text == "ok\ufffd"

    def test_send_writes_200(self, make_connection):
        conn = make_connection()
        request = HTTPRequest(method=Method.GET, path="/", connection=conn)

        request.send("hi")

        assert bytes(conn.sent) == b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi"
        assert request.response_status == HTTPStatus.OK
        assert request.responded is True

    def test_send_json_sets_content_type(self, make_connection):
        conn = make_connection()
        request = HTTPRequest(method=Method.GET, path="/", connection=conn)

        request.send_json({"a": 1})

        assert bytes(conn.sent) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Length: 8\r\n"
            b"Content-Type: application/json\r\n"
            b"\r\n"
            b'{"a": 1}'
        )

    def test_send_json_passes_text_through(self, make_connection):
        conn = make_connection()
        request = HTTPRequest(method=Method.GET, path="/", connection=conn)

        request.send_json('{"raw":true}')

        assert bytes(conn.sent).endswith(b'\r\n\r\n{"raw":true}')

    def test_only_one_response_per_request(self, make_connection):
        request = HTTPRequest(method=Method.GET, path="/", connection=make_connection())
        request.send("first")

        with pytest.raises(RuntimeError):
            request.send("second")

    def test_respond_without_connection(self):
        request = HTTPRequest(method=Method.GET, path="/")
        with pytest.raises(RuntimeError):
            request.send("hi")

    def test_write_failure_propagates(self, make_connection):
        request = HTTPRequest(
            method=Method.GET, path="/", connection=make_connection(fail_writes=True)
        )
        with pytest.raises(OSError):
            request.send("hi")
        assert request.response_status is None
