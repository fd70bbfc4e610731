# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Scriptable transport for tests and offline use."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import ErrorCategory, TransportError, wrap_transport_exception
from .models import Headers
from .transport import ErrorCallback, ResponseCallback, ResponseStream, Transport, TransportRequest


@dataclass
class StubResponse:
    """
    One scripted response.

    ``chunks`` are pushed as-is so malformed (non-bytes) chunks can be
    simulated; ``body`` is a shortcut for a single chunk. ``end``/``close``
    control which terminal stream signals fire. ``delay`` postpones the
    response, ``error`` replaces it with a transport failure.
    """

    status_code: int = 200
    headers: Headers = field(default_factory=dict)
    body: bytes | None = None
    chunks: Sequence[Any] = ()
    end: bool = True
    close: bool = True
    delay: float = 0.0
    error: BaseException | None = None

    def iter_chunks(self) -> list[Any]:
        if self.chunks:
            return list(self.chunks)
        if self.body is not None:
            return [self.body]
        return []


class StubCall:
    def __init__(self) -> None:
        self.task: asyncio.Task[None] | None = None
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


class StubTransport(Transport):
    """Deterministic, programmable Transport keyed by URL."""

    def __init__(self, responses: dict[str, StubResponse | Sequence[StubResponse]] | None = None):
        self._responses: dict[str, list[StubResponse]] = {}
        self.requests: list[TransportRequest] = []
        self.calls: list[StubCall] = []
        for url, scripted in (responses or {}).items():
            self.add(url, scripted)

    def add(self, url: str, response: StubResponse | Sequence[StubResponse]) -> None:
        if isinstance(response, StubResponse):
            self._responses.setdefault(url, []).append(response)
        else:
            self._responses.setdefault(url, []).extend(response)

    def _next(self, url: str) -> StubResponse | None:
        queue = self._responses.get(url)
        if not queue:
            return None
        # The last scripted response repeats.
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def start(self, request: TransportRequest, on_response: ResponseCallback, on_error: ErrorCallback) -> StubCall:
        self.requests.append(request)
        call = StubCall()
        self.calls.append(call)
        scripted = self._next(request.url)
        call.task = asyncio.get_running_loop().create_task(self._run(request, scripted, on_response, on_error, call))
        return call

    async def _run(
        self,
        request: TransportRequest,
        scripted: StubResponse | None,
        on_response: ResponseCallback,
        on_error: ErrorCallback,
        call: StubCall,
    ) -> None:
        await asyncio.sleep(scripted.delay if scripted is not None else 0)
        if call.aborted:
            return
        if scripted is None:
            on_error(TransportError("No stubbed response configured", category=ErrorCategory.CONNECTION_ERROR, url=request.url))
            return
        if scripted.error is not None:
            on_error(wrap_transport_exception(scripted.error, url=request.url))
            return

        stream = ResponseStream(scripted.status_code, scripted.headers, request.url)
        on_response(stream)
        for chunk in scripted.iter_chunks():
            if call.aborted:
                return
            stream.push(chunk)
            await asyncio.sleep(0)
        if call.aborted:
            return
        if scripted.end:
            stream.end()
        if scripted.close:
            stream.close()

    async def aclose(self) -> None:
        return None
