# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers for redirect handling."""

from __future__ import annotations

from urllib.parse import urljoin, urlparse


def is_absolute(url: str) -> bool:
    parsed = urlparse(str(url or ""))
    return bool(parsed.scheme and parsed.netloc)


def resolve_location(current_url: str, location: str) -> str:
    """
    Resolve a ``Location`` header against the URL that produced it.

    Examples:
      http://host/a/b + ../c       -> http://host/c
      https://host/a + //cdn/x     -> https://cdn/x
    """
    return urljoin(str(current_url or ""), str(location or "").strip())


def same_origin(a: str, b: str) -> bool:
    """Return True when both URLs share the same scheme + netloc."""
    pa = urlparse(str(a or ""))
    pb = urlparse(str(b or ""))
    return (pa.scheme, pa.netloc) == (pb.scheme, pb.netloc)


__all__ = ["is_absolute", "resolve_location", "same_origin"]
