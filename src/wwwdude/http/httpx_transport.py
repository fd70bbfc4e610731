# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

import asyncio
import logging

import httpx

from ..config import ClientSettings, load_client_settings
from ..errors import wrap_transport_exception
from .transport import ErrorCallback, ResponseCallback, ResponseStream, Transport, TransportRequest

logger = logging.getLogger(__name__)


class HttpxCall:
    """In-flight streaming request running as an asyncio task."""

    def __init__(self) -> None:
        self.task: asyncio.Task[None] | None = None
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


class HttpxTransport(Transport):
    """
    Asynchronous httpx transport.

    Redirects and deadlines are handled by the client, so the underlying
    httpx client never follows redirects and has no timeout of its own.
    """

    def __init__(self, settings: ClientSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_client_settings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=False,
                timeout=None,
                verify=self.settings.verify_ssl,
            )
        return self._client

    def start(self, request: TransportRequest, on_response: ResponseCallback, on_error: ErrorCallback) -> HttpxCall:
        call = HttpxCall()
        call.task = asyncio.get_running_loop().create_task(self._run(request, on_response, on_error, call))
        return call

    async def _run(self, request: TransportRequest, on_response: ResponseCallback, on_error: ErrorCallback, call: HttpxCall) -> None:
        stream: ResponseStream | None = None
        ended = False
        try:
            async with self.client.stream(
                request.method,
                request.url,
                headers=request.headers,
                content=request.payload,
                follow_redirects=False,
            ) as resp:
                stream = ResponseStream(resp.status_code, resp.headers, str(resp.url))
                on_response(stream)
                async for chunk in resp.aiter_bytes():
                    if call.aborted:
                        return
                    if chunk:
                        stream.push(chunk)
                ended = True
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if call.aborted:
                return
            logger.debug("Transport failure for %s %s: %s", request.method, request.url, exc)
            on_error(wrap_transport_exception(exc, url=request.url))
            return

        if stream is None or call.aborted:
            return
        if ended:
            stream.end()
        stream.close()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
