# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across wwwdude."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from .headers import header_value
from .url import is_absolute

Headers = dict[str, str]
ContentParser = Callable[[bytes], Any]

METHODS = frozenset({"GET", "PUT", "POST", "DELETE", "HEAD"})

_MISSING: Any = object()


@dataclass(frozen=True)
class RequestDescriptor:
    """One immutable request attempt; a redirect derives a new descriptor."""

    method: str
    url: str
    headers: Headers = field(default_factory=dict)
    payload: bytes | None = None
    timeout: float | None = None
    follow_redirect: bool | None = None
    content_parser: ContentParser | None = None

    def __post_init__(self) -> None:
        method = str(self.method or "").upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method!r}")
        object.__setattr__(self, "method", method)

        if not is_absolute(self.url):
            raise ValueError(f"Request URL must be absolute: {self.url!r}")

        if isinstance(self.payload, str):
            object.__setattr__(self, "payload", self.payload.encode("utf-8"))
        elif isinstance(self.payload, (bytearray, memoryview)):
            object.__setattr__(self, "payload", bytes(self.payload))

    def redirected(self, url: str, method: str | None = None) -> RequestDescriptor:
        """Return the follow-up descriptor, sharing headers and payload."""
        return replace(self, url=url, method=method or self.method)


@dataclass(frozen=True)
class HopRecord:
    method: str
    url: str
    status_code: int | None = None


@dataclass(frozen=True)
class RedirectChain:
    """
    Ordered, immutable record of the hops of one logical request.

    Passed by value from one hop to the next; ``append`` never mutates.
    """

    original_url: str
    hops: tuple[HopRecord, ...] = ()
    max_redirects: int = 10

    @classmethod
    def start(cls, descriptor: RequestDescriptor, max_redirects: int = 10) -> RedirectChain:
        return cls(original_url=descriptor.url, hops=(), max_redirects=max_redirects)

    def append(self, hop: HopRecord) -> RedirectChain:
        return replace(self, hops=self.hops + (hop,))

    @property
    def redirect_count(self) -> int:
        """Number of redirects already followed (hops beyond the first)."""
        return max(0, len(self.hops) - 1)

    @property
    def urls(self) -> list[str]:
        return [hop.url for hop in self.hops]


@dataclass
class ResponseRecord:
    """Completed response: status, headers and the raw accumulated body."""

    status_code: int
    headers: Headers = field(default_factory=dict)
    raw: bytes = b""
    url: str | None = None
    method: str | None = None
    chain: RedirectChain | None = None
    data: Any = _MISSING
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return self.data is not _MISSING

    @property
    def payload(self) -> Any:
        """Parsed data if a parser succeeded, else the raw body."""
        return self.data if self.has_data else self.raw

    @property
    def original_url(self) -> str | None:
        if self.chain is not None:
            return self.chain.original_url
        return self.url

    def header(self, name: str, default: str = "") -> str:
        return header_value(self.headers, name, default)


__all__ = [
    "METHODS",
    "ContentParser",
    "Headers",
    "HopRecord",
    "RedirectChain",
    "RequestDescriptor",
    "ResponseRecord",
]
