# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
wwwdude package entrypoint.

An asyncio HTTP client that reports each response as a cascade of events
(status class, exact code, reason name, success/redirect/error category and
``complete``), follows 301/302/303 redirects on the same event handle and can
pre-parse bodies with a pluggable content parser. The transport is injectable;
the default one streams through httpx.
"""

from . import parsers
from .accumulator import BodyAccumulator, CompletionState
from .classifier import classify
from .client import Client, create_client
from .config import ClientSettings, load_client_settings
from .errors import (
    ContentParseError,
    ErrorCategory,
    MalformedChunkError,
    RequestTimeoutError,
    TooManyRedirectsError,
    TransportError,
    WwwdudeError,
)
from .events import Event, EventKind, ResponseEmitter
from .http import (
    HttpxTransport,
    RedirectChain,
    RequestDescriptor,
    ResponseRecord,
    StubResponse,
    StubTransport,
    Transport,
)
from .log import setup_logging
from .redirects import RedirectController
from .status_codes import STATUS_CODES
from .version import __version__

__all__ = [
    "BodyAccumulator",
    "Client",
    "ClientSettings",
    "CompletionState",
    "ContentParseError",
    "ErrorCategory",
    "Event",
    "EventKind",
    "HttpxTransport",
    "MalformedChunkError",
    "RedirectChain",
    "RedirectController",
    "RequestDescriptor",
    "RequestTimeoutError",
    "ResponseEmitter",
    "ResponseRecord",
    "STATUS_CODES",
    "StubResponse",
    "StubTransport",
    "TooManyRedirectsError",
    "Transport",
    "TransportError",
    "WwwdudeError",
    "classify",
    "create_client",
    "load_client_settings",
    "parsers",
    "setup_logging",
    "__version__",
]
