# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-response body accumulation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .errors import MalformedChunkError, WwwdudeError
from .http.transport import ResponseStream

logger = logging.getLogger(__name__)


class CompletionState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class BodyAccumulator:
    """
    Collect the chunks of one response into a single bytes buffer.

    The buffer is concatenated exactly once, on whichever of ``end`` or
    ``close`` arrives first; every later signal is ignored. Chunks are never
    decoded. ``on_complete`` receives the body and whether the stream closed
    without a preceding ``end``.
    """

    def __init__(
        self,
        on_complete: Callable[[bytes, bool], None],
        on_error: Callable[[WwwdudeError], None] | None = None,
    ):
        self._on_complete = on_complete
        self._on_error = on_error
        self._chunks: list[bytes] = []
        self.length = 0
        self.chunk_count = 0
        self.state = CompletionState.PENDING
        self.body: bytes | None = None

    def attach(self, stream: ResponseStream) -> BodyAccumulator:
        stream.on("data", self._on_data)
        stream.on("end", self.end)
        stream.on("close", self.close)
        return self

    def feed(self, chunk: object) -> None:
        if self.state is not CompletionState.PENDING:
            return
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise MalformedChunkError(chunk)
        data = bytes(chunk)
        self._chunks.append(data)
        self.length += len(data)
        self.chunk_count += 1

    def _on_data(self, chunk: object) -> None:
        try:
            self.feed(chunk)
        except MalformedChunkError as exc:
            self.fail()
            if self._on_error is not None:
                self._on_error(exc)

    def end(self) -> None:
        self._complete(closed_early=False)

    def close(self) -> None:
        if self.state is CompletionState.PENDING:
            logger.warning("Response stream closed without end after %d bytes; completing anyway", self.length)
        self._complete(closed_early=True)

    def fail(self) -> None:
        """Discard buffered chunks; later end/close signals become no-ops."""
        if self.state is not CompletionState.PENDING:
            return
        self.state = CompletionState.FAILED
        self._chunks.clear()

    def _complete(self, *, closed_early: bool) -> None:
        if self.state is not CompletionState.PENDING:
            return
        self.state = CompletionState.COMPLETED
        self.body = b"".join(self._chunks)
        self._chunks.clear()
        self._on_complete(self.body, closed_early)


__all__ = ["BodyAccumulator", "CompletionState"]
