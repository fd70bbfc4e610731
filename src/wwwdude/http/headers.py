# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header normalization utilities.

HTTP header field names are case-insensitive (RFC 9110). Requests keep the
caller's casing; merging and lookups compare lower-cased names.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _coerce_headers_mapping(headers: Any) -> Mapping[object, object] | None:
    """
    Best-effort coercion of "dict-like" header containers into a Mapping.

    Accepts plain dicts, httpx.Headers and iterables of pairs.
    """
    if not headers:
        return None
    if isinstance(headers, Mapping):
        return headers

    items = getattr(headers, "items", None)
    if callable(items):
        return dict(items())
    return dict(headers)


def normalize_headers(headers: Any) -> dict[str, str]:
    """Return a lowercase-keyed copy of a header mapping."""
    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return {}
    out: dict[str, str] = {}
    for key, value in coerced.items():
        if key is None:
            continue
        name = str(key).strip().lower()
        if not name:
            continue
        out[name] = "" if value is None else str(value)
    return out


def merge_headers(base: Any, override: Any) -> dict[str, str]:
    """
    Merge two header mappings; ``override`` wins on case-insensitive collisions.

    The casing of the winning entry is kept, so ``{"User-Agent": "a"}`` merged
    with ``{"user-agent": "b"}`` gives ``{"user-agent": "b"}``.
    """
    merged: dict[str, tuple[str, str]] = {}
    for source in (base, override):
        coerced = _coerce_headers_mapping(source)
        if not coerced:
            continue
        for key, value in coerced.items():
            if key is None:
                continue
            name = str(key).strip()
            if not name:
                continue
            merged[name.lower()] = (name, "" if value is None else str(value))
    return dict(merged.values())


def header_value(headers: Mapping[object, object] | None, name: str, default: str = "") -> str:
    """
    Return a header value using case-insensitive key matching.

    Fast-paths common key casings before falling back to a full scan.
    """
    if not headers or not name:
        return default

    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return default

    lower = str(name).lower()
    for key in (name, lower, lower.title()):
        if key in coerced:
            value = coerced.get(key)
            return default if value is None else str(value).strip()

    for key, value in coerced.items():
        if key is None:
            continue
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()

    return default


def has_header(headers: Mapping[object, object] | None, name: str) -> bool:
    if not headers:
        return False
    lower = name.lower()
    return any(key is not None and str(key).lower() == lower for key in headers)


__all__ = ["has_header", "header_value", "merge_headers", "normalize_headers"]
