# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Response classification.

One response fans out into a cascade of events, always in this order:

1. status class (``4XX``)
2. exact code (``404``)
3. reason name (``not-found``), skipped for codes missing from the table
4. range category: ``http-error`` + ``http-client-error``/``http-server-error``,
   or ``redirect``, or ``success``
5. ``complete``

Listeners subscribe at whichever granularity they need.
"""

from __future__ import annotations

from dataclasses import dataclass

from .events import Event, EventKind
from .http.models import ResponseRecord
from .status_codes import reason_name, status_class

# Redirect codes followed automatically, and the method override (None keeps the method).
# 307/308 are deliberately absent: they are reported as ``redirect`` but not followed.
FOLLOWED_REDIRECTS: dict[int, str | None] = {
    301: None,
    302: None,
    303: "GET",
}


@dataclass(frozen=True)
class Classification:
    names: tuple[tuple[EventKind, str], ...]

    def __iter__(self):
        return iter(self.names)


def classify(status_code: int) -> Classification:
    """Return the ordered (kind, name) cascade for ``status_code``."""
    code = int(status_code)
    names: list[tuple[EventKind, str]] = [
        (EventKind.STATUS_CLASS, status_class(code)),
        (EventKind.STATUS_CODE, str(code)),
    ]
    reason = reason_name(code)
    if reason is not None:
        names.append((EventKind.REASON, reason))

    if code >= 400:
        names.append((EventKind.HTTP_ERROR, EventKind.HTTP_ERROR.value))
        if code < 500:
            names.append((EventKind.HTTP_CLIENT_ERROR, EventKind.HTTP_CLIENT_ERROR.value))
        else:
            names.append((EventKind.HTTP_SERVER_ERROR, EventKind.HTTP_SERVER_ERROR.value))
    elif code >= 300:
        names.append((EventKind.REDIRECT, EventKind.REDIRECT.value))
    elif code >= 200:
        names.append((EventKind.SUCCESS, EventKind.SUCCESS.value))

    names.append((EventKind.COMPLETE, EventKind.COMPLETE.value))
    return Classification(tuple(names))


def build_events(response: ResponseRecord) -> list[Event]:
    """Materialize the cascade for ``response``; every event shares one payload."""
    payload = response.payload
    return [Event(kind=kind, name=name, payload=payload, response=response) for kind, name in classify(response.status_code)]


def redirect_method(status_code: int, method: str) -> str | None:
    """Method for the follow-up request, or None when ``status_code`` is not followed."""
    if status_code not in FOLLOWED_REDIRECTS:
        return None
    return FOLLOWED_REDIRECTS[status_code] or method


__all__ = ["FOLLOWED_REDIRECTS", "Classification", "build_events", "classify", "redirect_method"]
