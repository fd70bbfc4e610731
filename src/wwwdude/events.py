# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Event primitives.

A single response produces many events (see ``classifier``); each one is an
``Event`` whose ``name`` is the subscription key (``"404"``, ``"4XX"``,
``"not-found"``, ``"success"``...) and whose ``kind`` says which step of the
cascade produced it. Emitting a name nobody listens to is a silent no-op.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .http.models import ResponseRecord

Listener = Callable[..., Any]


class EventKind(str, Enum):
    STATUS_CLASS = "status-class"
    STATUS_CODE = "status-code"
    REASON = "reason"
    HTTP_ERROR = "http-error"
    HTTP_CLIENT_ERROR = "http-client-error"
    HTTP_SERVER_ERROR = "http-server-error"
    REDIRECT = "redirect"
    SUCCESS = "success"
    COMPLETE = "complete"
    ERROR = "error"


# Kinds whose subscription name is the kind value itself.
FIXED_NAME_KINDS = frozenset(
    {
        EventKind.HTTP_ERROR,
        EventKind.HTTP_CLIENT_ERROR,
        EventKind.HTTP_SERVER_ERROR,
        EventKind.REDIRECT,
        EventKind.SUCCESS,
        EventKind.COMPLETE,
        EventKind.ERROR,
    }
)


@dataclass(frozen=True)
class Event:
    kind: EventKind
    name: str
    payload: Any = None
    response: ResponseRecord | None = None


def event_key(name: str | int | EventKind) -> str:
    """Normalize a subscription key: ints become their decimal text, kinds their value."""
    if isinstance(name, EventKind):
        if name not in FIXED_NAME_KINDS:
            raise ValueError(f"{name!r} has no fixed event name; subscribe to a concrete code, class or reason")
        return name.value
    return str(name)


class EventEmitter:
    """Minimal synchronous name -> listeners dispatcher."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, name: str | int | EventKind, listener: Listener) -> EventEmitter:
        self._listeners.setdefault(event_key(name), []).append((listener, False))
        return self

    def once(self, name: str | int | EventKind, listener: Listener) -> EventEmitter:
        self._listeners.setdefault(event_key(name), []).append((listener, True))
        return self

    def off(self, name: str | int | EventKind, listener: Listener) -> EventEmitter:
        key = event_key(name)
        entries = self._listeners.get(key)
        if not entries:
            return self
        for index, (registered, _once) in enumerate(entries):
            if registered is listener:
                del entries[index]
                break
        if not entries:
            del self._listeners[key]
        return self

    def listener_count(self, name: str | int | EventKind) -> int:
        return len(self._listeners.get(event_key(name), ()))

    def emit(self, name: str, *args: Any) -> bool:
        """Call every listener for ``name`` in registration order; False when none was registered."""
        entries = self._listeners.get(name)
        if not entries:
            return False
        snapshot = list(entries)
        remaining = [entry for entry in entries if not entry[1]]
        if remaining:
            self._listeners[name] = remaining
        else:
            del self._listeners[name]
        for listener, _once in snapshot:
            listener(*args)
        return True


class ResponseEmitter(EventEmitter):
    """
    Caller-facing handle for one logical request.

    The same handle receives the events of every hop of a redirect chain.
    Awaiting it yields the terminal ``Event`` (the last ``complete`` or the
    ``error`` that ended the chain).
    """

    def __init__(self) -> None:
        super().__init__()
        self._any_listeners: list[Callable[[Event], Any]] = []
        self._finished: asyncio.Future[Event] | None = None
        self.history: list[Event] = []

    def on_any(self, listener: Callable[[Event], Any]) -> ResponseEmitter:
        self._any_listeners.append(listener)
        return self

    def dispatch(self, event: Event) -> bool:
        self.history.append(event)
        for listener in list(self._any_listeners):
            listener(event)
        return self.emit(event.name, event.payload, event.response)

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._finished is None:
            self._finished = loop.create_future()

    def finish(self, event: Event) -> None:
        if self._finished is not None and not self._finished.done():
            self._finished.set_result(event)

    def fail(self, exc: BaseException) -> None:
        if self._finished is not None and not self._finished.done():
            self._finished.set_exception(exc)

    @property
    def done(self) -> bool:
        return self._finished is not None and self._finished.done()

    async def wait(self) -> Event:
        if self._finished is None:
            raise RuntimeError("Request has not been started on an event loop")
        return await self._finished

    def __await__(self) -> Generator[Any, None, Event]:
        return self.wait().__await__()


__all__ = ["Event", "EventEmitter", "EventKind", "ResponseEmitter", "event_key"]
