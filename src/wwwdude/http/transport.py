# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction consumed by the request orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..config import DEFAULT_CONTENT_TYPE, ClientSettings, load_client_settings
from ..events import EventEmitter
from .headers import has_header, normalize_headers
from .models import Headers, RequestDescriptor


@dataclass(frozen=True)
class TransportRequest:
    """Wire-level request handed to a Transport."""

    method: str
    url: str
    headers: Headers
    payload: bytes | None = None
    timeout: float | None = None


def prepare_request(descriptor: RequestDescriptor, *, default_content_type: str = DEFAULT_CONTENT_TYPE) -> TransportRequest:
    """
    Build the wire request, filling payload headers.

    A payload gets a default Content-Type when none was given, and a
    Content-Length equal to its encoded byte length.
    """
    headers = dict(descriptor.headers)
    payload = descriptor.payload
    if payload is not None:
        if not has_header(headers, "Content-Type"):
            headers["Content-Type"] = default_content_type
        for key in [key for key in headers if key.lower() == "content-length"]:
            del headers[key]
        headers["Content-Length"] = str(len(payload))
    return TransportRequest(
        method=descriptor.method,
        url=descriptor.url,
        headers=headers,
        payload=payload,
        timeout=descriptor.timeout,
    )


class ResponseStream(EventEmitter):
    """
    Byte stream of one response.

    Emits ``data`` (one chunk), ``end`` (body fully read) and ``close``
    (underlying resource released). ``close`` may arrive without ``end``.
    """

    def __init__(self, status_code: int, headers: Headers | None = None, url: str | None = None):
        super().__init__()
        self.status_code = int(status_code)
        self.headers = normalize_headers(headers)
        self.url = url

    def push(self, chunk: object) -> None:
        self.emit("data", chunk)

    def end(self) -> None:
        self.emit("end")

    def close(self) -> None:
        self.emit("close")


ResponseCallback = Callable[[ResponseStream], None]
ErrorCallback = Callable[[BaseException], None]


class TransportCall(Protocol):
    """Handle of one in-flight transport call."""

    def abort(self) -> None: ...


class Transport(Protocol):
    """Minimal protocol for issuing HTTP requests on the running event loop."""

    def start(self, request: TransportRequest, on_response: ResponseCallback, on_error: ErrorCallback) -> TransportCall: ...

    async def aclose(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_transport(settings: ClientSettings | None = None) -> Transport:
    """Factory for the default httpx-backed transport."""
    from .httpx_transport import HttpxTransport

    return HttpxTransport(settings or load_client_settings())


__all__ = [
    "ErrorCallback",
    "ResponseCallback",
    "ResponseStream",
    "Transport",
    "TransportCall",
    "TransportRequest",
    "create_default_transport",
    "prepare_request",
]
