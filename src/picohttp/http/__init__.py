"""
HTTP protocol layer: methods, status codes, request parsing, responses
and routing. Nothing in here touches sockets directly.
"""

from .errors import (
    DispatchError,
    EmptyRequest,
    HandlerFailed,
    HTTPParseError,
    InvalidContentLength,
    LineTooLong,
    MalformedRequestLine,
    MissingHeaderSeparator,
    PayloadTooLarge,
    TruncatedBody,
    UnknownMethod,
    UnsupportedTransferEncoding,
)
from .method import Method
from .request import HTTPRequest, RequestParser, parse_request
from .response import HTTPResponse, bad_request, not_found, ok
from .router import Handler, Router
from .status_codes import HTTPStatus

__all__ = [
    # Protocol values
    "Method",
    "HTTPStatus",
    # Request
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    # Response
    "HTTPResponse",
    "ok",
    "not_found",
    "bad_request",
    # Routing
    "Router",
    "Handler",
    # Errors
    "HTTPParseError",
    "EmptyRequest",
    "MalformedRequestLine",
    "UnknownMethod",
    "MissingHeaderSeparator",
    "InvalidContentLength",
    "UnsupportedTransferEncoding",
    "TruncatedBody",
    "LineTooLong",
    "PayloadTooLarge",
    "DispatchError",
    "HandlerFailed",
]
