# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers.

Every failure of a request attempt is delivered as the payload of a single
``error`` event; the classes below let listeners tell the kinds apart.
"""

from __future__ import annotations

import socket
import ssl
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from .http.models import RedirectChain


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    MALFORMED_CHUNK = "MALFORMED_CHUNK"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class WwwdudeError(Exception):
    """Base class for failures surfaced through ``error`` events."""

    category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR


class TransportError(WwwdudeError):
    """The transport failed before a complete response was read."""

    def __init__(self, message: str, *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR, url: str | None = None):
        super().__init__(message)
        self.category = category
        self.url = url


class RequestTimeoutError(TransportError):
    """The per-hop deadline expired and the transport call was aborted."""

    def __init__(self, timeout: float, *, url: str | None = None):
        super().__init__(f"HTTP timeout of {timeout:g}s was triggered", category=ErrorCategory.TIMEOUT, url=url)
        self.timeout = timeout


class ContentParseError(WwwdudeError):
    """The configured content parser rejected the response body."""

    category = ErrorCategory.PARSE_ERROR

    def __init__(self, message: str, *, raw: bytes = b""):
        super().__init__(message)
        self.raw = raw


class MalformedChunkError(WwwdudeError):
    """A response stream produced a chunk that is not a byte sequence."""

    category = ErrorCategory.MALFORMED_CHUNK

    def __init__(self, chunk: Any):
        super().__init__(f"chunk should be bytes, got {type(chunk).__name__}")
        self.chunk = chunk


class TooManyRedirectsError(WwwdudeError):
    """The redirect chain grew past the configured hop limit."""

    category = ErrorCategory.TOO_MANY_REDIRECTS

    def __init__(self, chain: RedirectChain):
        super().__init__(f"Exceeded {chain.max_redirects} redirects starting at {chain.original_url}")
        self.chain = chain


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, WwwdudeError):
        return exc.category

    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
        return ErrorCategory.PROTOCOL_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError, httpx.ProxyError)):
        cause = exc.__cause__ or exc.__context__
        if cause is not None and isinstance(cause, (socket.gaierror, socket.herror)):
            return ErrorCategory.DNS_ERROR
        if cause is not None and isinstance(cause, ssl.SSLError):
            return ErrorCategory.SSL_ERROR
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ssl.SSLError, ssl.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, TimeoutError):
        return ErrorCategory.TIMEOUT

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Request timed out",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.PROTOCOL_ERROR: "Malformed HTTP exchange",
        ErrorCategory.PARSE_ERROR: "Response body could not be parsed",
        ErrorCategory.MALFORMED_CHUNK: "Response stream produced a non-bytes chunk",
        ErrorCategory.TOO_MANY_REDIRECTS: "Too many redirects",
        ErrorCategory.UNKNOWN_ERROR: "Network error during request",
        None: "",
    }
    return mapping.get(category, "Request failed due to network error")


def wrap_transport_exception(exc: BaseException, *, url: str | None = None) -> TransportError:
    """Normalize a raw transport exception into a TransportError."""
    if isinstance(exc, TransportError):
        return exc
    category = categorize_exception(exc)
    message = str(exc) or error_category_to_reason(category)
    wrapped = TransportError(message, category=category, url=url)
    wrapped.__cause__ = exc
    return wrapped


__all__ = [
    "ContentParseError",
    "ErrorCategory",
    "MalformedChunkError",
    "RequestTimeoutError",
    "TooManyRedirectsError",
    "TransportError",
    "WwwdudeError",
    "categorize_exception",
    "error_category_to_reason",
    "wrap_transport_exception",
]
