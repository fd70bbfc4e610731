# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import gc

import pytest

from wwwdude.client import create_client
from wwwdude.config import ClientSettings
from wwwdude.errors import (
    ContentParseError,
    ErrorCategory,
    MalformedChunkError,
    RequestTimeoutError,
    TooManyRedirectsError,
    TransportError,
)
from wwwdude.events import EventKind
from wwwdude.http.adapters import StubResponse, StubTransport
from wwwdude.http.headers import header_value


def _client(transport, **options):
    return create_client(options.pop("headers", None), transport=transport, settings=ClientSettings(), **options)


def _run(scenario):
    return asyncio.run(scenario())


def test_success_events_arrive_in_order_on_handle():
    transport = StubTransport({"http://example/": StubResponse(200, {"Content-Type": "text/plain"}, chunks=[b"ab", b"cd", b"ef"])})
    seen = []

    async def scenario():
        handle = _client(transport).get("http://example/")
        handle.on_any(lambda event: seen.append(event.name))
        handle.on("success", lambda payload, response: seen.append(("success-listener", payload, response.status_code)))
        return await handle

    terminal = _run(scenario)
    assert seen == ["2XX", "200", "ok", "success", ("success-listener", b"abcdef", 200), "complete"]
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.response.raw == b"abcdef"
    assert terminal.response.has_data is False


def test_client_and_server_error_cascades():
    transport = StubTransport(
        {
            "http://example/missing": StubResponse(404, body=b"nope"),
            "http://example/broken": StubResponse(503),
        }
    )

    async def scenario():
        client = _client(transport)
        missing = client.get("http://example/missing")
        broken = client.get("http://example/broken")
        await missing
        await broken
        return missing, broken

    missing, broken = _run(scenario)
    assert [event.name for event in missing.history] == ["4XX", "404", "not-found", "http-error", "http-client-error", "complete"]
    assert [event.name for event in broken.history] == ["5XX", "503", "service-unavailable", "http-error", "http-server-error", "complete"]


def test_listeners_by_code_class_and_kind():
    transport = StubTransport({"http://example/": StubResponse(404)})
    hits = []

    async def scenario():
        handle = _client(transport).get("http://example/")
        handle.on(404, lambda *_: hits.append("int"))
        handle.on("4XX", lambda *_: hits.append("class"))
        handle.on("not-found", lambda *_: hits.append("reason"))
        handle.on(EventKind.HTTP_CLIENT_ERROR, lambda *_: hits.append("kind"))
        await handle

    _run(scenario)
    assert hits == ["class", "int", "reason", "kind"]


@pytest.mark.parametrize("code", [301, 302])
def test_301_302_follow_with_same_method_on_same_emitter(code):
    transport = StubTransport(
        {
            "http://example/a": StubResponse(code, {"Location": "/b"}),
            "http://example/b": StubResponse(201, body=b"done"),
        }
    )

    async def scenario():
        handle = _client(transport).post("http://example/a", payload=b"data")
        return handle, await handle

    handle, terminal = _run(scenario)
    names = [event.name for event in handle.history]
    assert names[:5] == ["3XX", str(code), names[2], "redirect", "complete"]
    assert names[5:] == ["2XX", "201", "created", "success", "complete"]
    assert [request.method for request in transport.requests] == ["POST", "POST"]
    assert transport.requests[1].url == "http://example/b"
    assert transport.requests[1].payload == b"data"
    assert terminal.response.raw == b"done"
    assert terminal.response.chain.urls == ["http://example/a", "http://example/b"]
    assert terminal.response.original_url == "http://example/a"


def test_303_forces_get():
    transport = StubTransport(
        {
            "http://example/form": StubResponse(303, {"Location": "http://example/result"}),
            "http://example/result": StubResponse(200),
        }
    )

    async def scenario():
        await _client(transport).put("http://example/form", payload="a=1")

    _run(scenario)
    assert [request.method for request in transport.requests] == ["PUT", "GET"]


def test_307_is_not_followed():
    transport = StubTransport(
        {
            "http://example/a": StubResponse(307, {"Location": "/b"}),
            "http://example/b": StubResponse(200),
        }
    )

    async def scenario():
        handle = _client(transport).get("http://example/a")
        return handle, await handle

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history] == ["3XX", "307", "temporary-redirect", "redirect", "complete"]
    assert len(transport.requests) == 1
    assert terminal.response.status_code == 307


@pytest.mark.parametrize("code", [301, 302, 303])
def test_follow_redirect_false_per_call(code):
    transport = StubTransport({"http://example/a": StubResponse(code, {"Location": "/b"})})

    async def scenario():
        handle = _client(transport).get("http://example/a", follow_redirect=False)
        return handle, await handle

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history][-2:] == ["redirect", "complete"]
    assert len(transport.requests) == 1
    assert terminal.response.status_code == code


def test_follow_redirect_false_on_client_and_call_override():
    transport = StubTransport(
        {
            "http://example/a": StubResponse(302, {"Location": "/b"}),
            "http://example/b": StubResponse(200),
        }
    )

    async def scenario():
        client = _client(transport, follow_redirect=False)
        await client.get("http://example/a")
        assert len(transport.requests) == 1
        await client.get("http://example/a", follow_redirect=True)

    _run(scenario)
    assert [request.url for request in transport.requests] == ["http://example/a", "http://example/a", "http://example/b"]


def test_redirect_limit_emits_single_error_after_cascade():
    transport = StubTransport({"http://example/loop": StubResponse(302, {"Location": "/loop"})})

    async def scenario():
        handle = _client(transport, max_redirects=2).get("http://example/loop")
        return handle, await handle

    handle, terminal = _run(scenario)
    names = [event.name for event in handle.history]
    assert len(transport.requests) == 3
    assert names.count("error") == 1
    assert names[-2:] == ["complete", "error"]
    assert isinstance(terminal.payload, TooManyRedirectsError)
    assert terminal.payload.chain.urls == ["http://example/loop"] * 3


def test_redirect_without_location_ends_chain():
    transport = StubTransport({"http://example/a": StubResponse(301)})

    async def scenario():
        return await _client(transport).get("http://example/a")

    terminal = _run(scenario)
    assert terminal.kind is EventKind.COMPLETE
    assert len(transport.requests) == 1


def test_parser_failure_emits_only_error():
    transport = StubTransport({"http://example/": StubResponse(200, body=b"{broken")})

    def always_fails(raw):
        raise ValueError("cannot parse")

    async def scenario():
        handle = _client(transport, content_parser=always_fails).get("http://example/")
        return handle, await handle

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history] == ["error"]
    assert isinstance(terminal.payload, ContentParseError)
    assert terminal.payload.raw == b"{broken"
    assert isinstance(terminal.payload.__cause__, ValueError)


def test_parser_success_attaches_data():
    transport = StubTransport({"http://example/": StubResponse(200, body=b'{"a": 1}')})
    received = []

    async def parse_later(raw):
        await asyncio.sleep(0)
        return {"parsed": raw.decode()}

    async def scenario():
        handle = _client(transport).get("http://example/", content_parser=parse_later)
        handle.on("complete", lambda payload, response: received.append((payload, response.raw)))
        return await handle

    terminal = _run(scenario)
    assert received == [({"parsed": '{"a": 1}'}, b'{"a": 1}')]
    assert terminal.response.data == {"parsed": '{"a": 1}'}


def test_timeout_aborts_and_fires_one_error():
    transport = StubTransport({"http://example/slow": StubResponse(200, delay=1.0)})

    async def scenario():
        handle = _client(transport, timeout=0.05).get("http://example/slow")
        terminal = await handle
        await asyncio.sleep(0.05)
        return handle, terminal

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history] == ["error"]
    assert isinstance(terminal.payload, RequestTimeoutError)
    assert terminal.payload.category is ErrorCategory.TIMEOUT
    assert terminal.payload.timeout == 0.05
    assert transport.calls[0].aborted is True


def test_call_completing_before_timeout_never_times_out():
    transport = StubTransport({"http://example/fast": StubResponse(200, body=b"ok")})

    async def scenario():
        handle = _client(transport).get("http://example/fast", timeout=0.2)
        terminal = await handle
        await asyncio.sleep(0.3)
        return handle, terminal

    handle, terminal = _run(scenario)
    assert terminal.kind is EventKind.COMPLETE
    assert "error" not in [event.name for event in handle.history]
    assert transport.calls[0].aborted is False


def test_transport_error_skips_classification():
    transport = StubTransport({"http://example/": StubResponse(error=ConnectionRefusedError("refused"))})

    async def scenario():
        handle = _client(transport).get("http://example/")
        return handle, await handle

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history] == ["error"]
    assert isinstance(terminal.payload, TransportError)
    assert terminal.payload.category is ErrorCategory.CONNECTION_ERROR
    assert terminal.response is None


def test_unscripted_url_is_a_transport_error():
    transport = StubTransport()

    async def scenario():
        return await _client(transport).head("http://example/nothing")

    terminal = _run(scenario)
    assert isinstance(terminal.payload, TransportError)
    assert "No stubbed response" in str(terminal.payload)


def test_malformed_chunk_fails_fast():
    transport = StubTransport({"http://example/": StubResponse(200, chunks=[b"ok", "text"])})

    async def scenario():
        handle = _client(transport).get("http://example/")
        return handle, await handle

    handle, terminal = _run(scenario)
    assert [event.name for event in handle.history] == ["error"]
    assert isinstance(terminal.payload, MalformedChunkError)
    assert transport.calls[0].aborted is True


def test_close_without_end_completes_with_flag():
    transport = StubTransport({"http://example/": StubResponse(200, body=b"cut", end=False, close=True)})

    async def scenario():
        return await _client(transport).get("http://example/")

    terminal = _run(scenario)
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.response.raw == b"cut"
    assert terminal.response.meta["stream_closed_early"] is True


def test_call_headers_override_client_headers():
    transport = StubTransport({"http://example/": StubResponse(200)})

    async def scenario():
        client = _client(transport, headers={"User-Agent": "node-wwwdude", "Accept": "text/plain"})
        await client.get("http://example/", headers={"User-Agent": "X"})
        await client.get("http://example/")

    _run(scenario)
    first, second = transport.requests
    assert first.headers == {"User-Agent": "X", "Accept": "text/plain"}
    assert header_value(second.headers, "user-agent") == "node-wwwdude"


def test_default_user_agent_from_settings():
    transport = StubTransport({"http://example/": StubResponse(200)})

    async def scenario():
        client = create_client(transport=transport, settings=ClientSettings(user_agent="UA/1.0"))
        await client.delete("http://example/")

    _run(scenario)
    assert transport.requests[0].method == "DELETE"
    assert transport.requests[0].headers["User-Agent"] == "UA/1.0"


def test_payload_headers_are_filled():
    transport = StubTransport({"http://example/": StubResponse(200)})

    async def scenario():
        client = _client(transport)
        await client.post("http://example/", payload="ä=1")
        await client.post("http://example/", payload=b"{}", headers={"content-type": "application/json"})

    _run(scenario)
    form, as_json = transport.requests
    assert form.payload == "ä=1".encode("utf-8")
    assert form.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert form.headers["Content-Length"] == "4"
    assert as_json.headers["content-type"] == "application/json"
    assert "Content-Type" not in as_json.headers


def test_listener_exception_is_raised_from_await():
    transport = StubTransport({"http://example/": StubResponse(200)})

    def explode(payload, response):
        raise RuntimeError("listener bug")

    async def scenario():
        handle = _client(transport).get("http://example/")
        handle.on("success", explode)
        with pytest.raises(RuntimeError, match="listener bug"):
            await handle

    _run(scenario)


def test_listener_failure_on_redirect_hop_stops_the_chain():
    transport = StubTransport(
        {
            "http://example/a": StubResponse(301, {"Location": "/b"}),
            "http://example/b": StubResponse(200),
        }
    )

    def explode(payload, response):
        raise RuntimeError("listener bug")

    async def scenario():
        handle = _client(transport).get("http://example/a")
        handle.once("complete", explode)
        with pytest.raises(RuntimeError, match="listener bug"):
            await handle
        for _ in range(5):
            await asyncio.sleep(0)
        return handle

    handle = _run(scenario)
    assert [event.name for event in handle.history] == ["3XX", "301", "moved-permanently", "redirect", "complete"]
    assert [request.url for request in transport.requests] == ["http://example/a"]


def test_async_parser_survives_garbage_collection():
    transport = StubTransport({"http://example/": StubResponse(200, body=b"slow")})

    async def slow_parser(raw):
        for _ in range(3):
            gc.collect()
            await asyncio.sleep(0)
        return raw.upper()

    async def scenario():
        return await _client(transport, content_parser=slow_parser).get("http://example/")

    terminal = _run(scenario)
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.response.data == b"SLOW"


def test_error_without_listener_is_silently_dropped():
    transport = StubTransport()

    async def scenario():
        handle = _client(transport).get("http://example/")
        assert handle.listener_count("error") == 0
        return await handle

    terminal = _run(scenario)
    assert terminal.kind is EventKind.ERROR


def test_invalid_requests_raise_immediately():
    async def scenario():
        client = _client(StubTransport())
        with pytest.raises(ValueError):
            client.request("PATCH", "http://example/")
        with pytest.raises(ValueError):
            client.get("/relative")

    _run(scenario)


def test_request_outside_event_loop_raises():
    client = _client(StubTransport())
    with pytest.raises(RuntimeError):
        client.get("http://example/")


def test_del_alias_and_async_context_manager():
    transport = StubTransport({"http://example/": StubResponse(204)})

    async def scenario():
        async with _client(transport) as client:
            return await client.del_("http://example/")

    terminal = _run(scenario)
    assert terminal.response.status_code == 204
    assert transport.requests[0].method == "DELETE"
