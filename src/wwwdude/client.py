# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Request orchestration.

Each public call creates one ``ResponseEmitter`` and starts the first hop on
the running event loop. A hop wires the transport's response stream into a
``BodyAccumulator``, runs the optional content parser, emits the
classification cascade and, for followed redirects, starts the next hop with
the same emitter and an appended ``RedirectChain``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .accumulator import BodyAccumulator
from .classifier import build_events
from .config import ClientSettings, load_client_settings
from .errors import (
    ContentParseError,
    RequestTimeoutError,
    TooManyRedirectsError,
    WwwdudeError,
    wrap_transport_exception,
)
from .events import Event, EventKind, ResponseEmitter
from .http.headers import merge_headers
from .http.models import ContentParser, HopRecord, RedirectChain, RequestDescriptor, ResponseRecord
from .http.transport import ResponseStream, Transport, TransportCall, create_default_transport, prepare_request
from .parsers import run_parser
from .redirects import RedirectController, RedirectPlan

logger = logging.getLogger(__name__)


class Hop:
    """One request attempt; settles exactly once (response, transport error or timeout)."""

    def __init__(self, client: Client, descriptor: RequestDescriptor, emitter: ResponseEmitter, chain: RedirectChain):
        self.client = client
        self.descriptor = descriptor
        self.emitter = emitter
        self.chain = chain
        self.settled = False
        self._call: TransportCall | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._accumulator: BodyAccumulator | None = None
        self._parse_task: asyncio.Task[None] | None = None

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        request = prepare_request(self.descriptor, default_content_type=self.client.settings.default_content_type)
        logger.debug("Starting hop %d: %s %s", len(self.chain.hops) + 1, request.method, request.url)
        self._call = self.client.transport.start(request, self._on_response, self._on_transport_error)
        timeout = self.descriptor.timeout
        if timeout and timeout > 0 and not self.settled:
            self._timer = loop.call_later(timeout, self._on_timeout)

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _settle(self) -> bool:
        if self.settled:
            return False
        self.settled = True
        self._clear_timer()
        return True

    def _on_response(self, stream: ResponseStream) -> None:
        if self.settled:
            return
        self._accumulator = BodyAccumulator(
            lambda body, closed_early: self._on_body(stream, body, closed_early),
            self._on_malformed_chunk,
        ).attach(stream)

    def _on_body(self, stream: ResponseStream, body: bytes, closed_early: bool) -> None:
        if not self._settle():
            return
        url = stream.url or self.descriptor.url
        record = ResponseRecord(
            status_code=stream.status_code,
            headers=dict(stream.headers),
            raw=body,
            url=url,
            method=self.descriptor.method,
            chain=self.chain.append(HopRecord(self.descriptor.method, url, stream.status_code)),
        )
        if closed_early:
            record.meta["stream_closed_early"] = True

        parser = self.descriptor.content_parser
        if parser is None:
            self._dispatch(record)
            return
        self._parse_task = asyncio.get_running_loop().create_task(self._parse_and_dispatch(parser, record))

    async def _parse_and_dispatch(self, parser: ContentParser, record: ResponseRecord) -> None:
        try:
            record.data = await run_parser(parser, record.raw)
        except ContentParseError as exc:
            logger.debug("Content parser failed for %s: %s", record.url, exc)
            self._emit_error(exc)
            return
        self._dispatch(record)

    def _dispatch(self, record: ResponseRecord) -> None:
        plan: RedirectPlan | None = None
        redirect_error: TooManyRedirectsError | None = None
        last: Event | None = None
        try:
            for event in build_events(record):
                self.emitter.dispatch(event)
                last = event
                if event.kind is EventKind.REDIRECT:
                    try:
                        plan = self.client.redirects.plan(self.descriptor, record)
                    except TooManyRedirectsError as exc:
                        redirect_error = exc
        except Exception as exc:  # noqa: BLE001
            # A failed handle never starts the follow-up hop.
            self.emitter.fail(exc)
            return

        if redirect_error is not None:
            self._emit_error(redirect_error)
        elif plan is not None:
            self.client.start_hop(plan.descriptor, self.emitter, plan.chain)
        elif last is not None:
            self.emitter.finish(last)

    def _emit_error(self, exc: WwwdudeError) -> None:
        event = Event(kind=EventKind.ERROR, name=EventKind.ERROR.value, payload=exc)
        try:
            self.emitter.dispatch(event)
        except Exception as listener_exc:  # noqa: BLE001
            self.emitter.fail(listener_exc)
            return
        self.emitter.finish(event)

    def _discard_body(self) -> None:
        if self._accumulator is not None:
            self._accumulator.fail()

    def _on_transport_error(self, exc: BaseException) -> None:
        if not self._settle():
            return
        self._discard_body()
        if not isinstance(exc, WwwdudeError):
            exc = wrap_transport_exception(exc, url=self.descriptor.url)
        self._emit_error(exc)

    def _on_malformed_chunk(self, exc: WwwdudeError) -> None:
        if not self._settle():
            return
        if self._call is not None:
            self._call.abort()
        self._emit_error(exc)

    def _on_timeout(self) -> None:
        self._timer = None
        if not self._settle():
            return
        if self._call is not None:
            self._call.abort()
        self._discard_body()
        timeout = self.descriptor.timeout or 0
        logger.debug("Timeout of %ss hit for %s %s", timeout, self.descriptor.method, self.descriptor.url)
        self._emit_error(RequestTimeoutError(timeout, url=self.descriptor.url))


class Client:
    """
    Event-emitting HTTP client.

    Every verb returns a ``ResponseEmitter`` immediately; attach listeners,
    then ``await`` it for the terminal event. Must be used from inside a
    running asyncio event loop.
    """

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
        content_parser: ContentParser | None = None,
        follow_redirect: bool | None = None,
        max_redirects: int | None = None,
        transport: Transport | None = None,
        settings: ClientSettings | None = None,
    ):
        self.settings = settings or load_client_settings()
        self.headers = merge_headers({"User-Agent": self.settings.user_agent}, headers)
        self.timeout = timeout if timeout is not None else self.settings.timeout
        self.content_parser = content_parser
        self.redirects = RedirectController(
            follow_redirect if follow_redirect is not None else self.settings.follow_redirects,
            max_redirects if max_redirects is not None else self.settings.max_redirects,
        )
        self.transport = transport or create_default_transport(self.settings)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        payload: bytes | str | None = None,
        timeout: float | None = None,
        content_parser: ContentParser | None = None,
        follow_redirect: bool | None = None,
    ) -> ResponseEmitter:
        descriptor = RequestDescriptor(
            method=method,
            url=url,
            headers=merge_headers(self.headers, headers),
            payload=payload,
            timeout=timeout if timeout is not None else self.timeout,
            follow_redirect=follow_redirect,
            content_parser=content_parser or self.content_parser,
        )
        emitter = ResponseEmitter()
        emitter.bind(asyncio.get_running_loop())
        self.start_hop(descriptor, emitter, self.redirects.start_chain(descriptor))
        return emitter

    def start_hop(self, descriptor: RequestDescriptor, emitter: ResponseEmitter, chain: RedirectChain) -> Hop:
        hop = Hop(self, descriptor, emitter, chain)
        hop.start()
        return hop

    def get(self, url: str, **opts: Any) -> ResponseEmitter:
        return self.request("GET", url, **opts)

    def put(self, url: str, **opts: Any) -> ResponseEmitter:
        return self.request("PUT", url, **opts)

    def post(self, url: str, **opts: Any) -> ResponseEmitter:
        return self.request("POST", url, **opts)

    def delete(self, url: str, **opts: Any) -> ResponseEmitter:
        return self.request("DELETE", url, **opts)

    del_ = delete

    def head(self, url: str, **opts: Any) -> ResponseEmitter:
        return self.request("HEAD", url, **opts)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()


def create_client(headers: dict[str, str] | None = None, **options: Any) -> Client:
    """Factory mirroring the Client constructor."""
    return Client(headers, **options)


__all__ = ["Client", "Hop", "create_client"]
