# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Content parsers.

A parser turns the raw body into structured data. It is a plain callable
``(raw: bytes) -> Any`` or a coroutine function; raising signals failure.
"""

from __future__ import annotations

import inspect
import json as _json
from typing import Any
from xml.etree import ElementTree

from .errors import ContentParseError
from .http.models import ContentParser


def json(raw: bytes) -> Any:
    """Decode a UTF-8 JSON body."""
    return _json.loads(raw.decode("utf-8"))


def xml(raw: bytes) -> ElementTree.Element:
    """Parse an XML body into its root element."""
    return ElementTree.fromstring(raw)


def text(raw: bytes) -> str:
    """Decode the body as strict UTF-8."""
    return raw.decode("utf-8")


PARSERS: dict[str, ContentParser] = {
    "json": json,
    "xml": xml,
    "text": text,
}


async def run_parser(parser: ContentParser, raw: bytes) -> Any:
    """Invoke ``parser`` once, awaiting it when it is asynchronous."""
    try:
        result = parser(raw)
        if inspect.isawaitable(result):
            result = await result
    except ContentParseError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ContentParseError(f"Content parser failed: {exc}", raw=raw) from exc
    return result


__all__ = ["PARSERS", "json", "run_parser", "text", "xml"]
