# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP models, helpers and transports."""

from .adapters import StubResponse, StubTransport
from .headers import header_value, merge_headers, normalize_headers
from .httpx_transport import HttpxTransport
from .models import Headers, HopRecord, RedirectChain, RequestDescriptor, ResponseRecord
from .transport import ResponseStream, Transport, TransportCall, TransportRequest, create_default_transport, prepare_request
from .url import resolve_location

__all__ = [
    "Headers",
    "HopRecord",
    "HttpxTransport",
    "RedirectChain",
    "RequestDescriptor",
    "ResponseRecord",
    "ResponseStream",
    "StubResponse",
    "StubTransport",
    "Transport",
    "TransportCall",
    "TransportRequest",
    "create_default_transport",
    "header_value",
    "merge_headers",
    "normalize_headers",
    "prepare_request",
    "resolve_location",
]
