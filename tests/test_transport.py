from __future__ import annotations

import asyncio
import json
import logging

import aiohttp
import pytest
from aiohttp import test_utils, web

from queryread import FetchRequest, QueryReadError, QueryReadStore, StoreConfig, StoreTransportError
from queryread import _transport as transport_module
from queryread._transport import HttpTransport, decode_body, encode_params


def test_encode_params_flattens_values() -> None:
    pairs = encode_params({"q": "ab", "ci": True, "n": 3, "tags": ["x", "y"], "skip": None, "f": {"a": 1}})

    assert pairs == [
        ("q", "ab"),
        ("ci", "true"),
        ("n", "3"),
        ("tags", "x"),
        ("tags", "y"),
        ("f", '{"a":1}'),
    ]


def test_decode_body_accepts_comment_wrapped_json() -> None:
    assert decode_body('/*{"items": []}*/') == {"items": []}
    assert decode_body('  /* {"items": [1]} */\n') == {"items": [1]}
    assert decode_body('{"items": []}') == {"items": []}


def _app() -> web.Application:
    async def search(request: web.Request) -> web.Response:
        if request.method == "POST":
            params = dict(await request.post())
        else:
            params = dict(request.query)
        return web.json_response({"items": [{"method": request.method, **params}]})

    async def wrapped(request: web.Request) -> web.Response:
        return web.Response(text="/*" + json.dumps({"items": [{"name": "w"}]}) + "*/", content_type="text/plain")

    async def broken(request: web.Request) -> web.Response:
        return web.Response(status=500, text="internal error")

    async def garbage(request: web.Request) -> web.Response:
        return web.Response(text="<html>nope</html>")

    async def bad_utf8(request: web.Request) -> web.Response:
        return web.Response(body=b'{"items": [{"n": "\xff\xfe"}]}', content_type="application/json", charset="utf-8")

    app = web.Application()
    app.router.add_route("*", "/search", search)
    app.router.add_get("/wrapped", wrapped)
    app.router.add_get("/broken", broken)
    app.router.add_get("/garbage", garbage)
    app.router.add_get("/bad-utf8", bad_utf8)
    return app


@pytest.mark.asyncio
async def test_get_sends_query_as_url_parameters() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        body = await transport.send(str(server.make_url("/search")), "GET", {"name": "ac", "ci": False})

    assert body == {"items": [{"method": "GET", "name": "ac", "ci": "false"}]}


@pytest.mark.asyncio
async def test_post_sends_query_as_form_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        body = await transport.send(str(server.make_url("/search")), "post", {"name": "ac"})

    assert body == {"items": [{"method": "POST", "name": "ac"}]}


@pytest.mark.asyncio
async def test_comment_wrapped_response() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        body = await HttpTransport(session).send(str(server.make_url("/wrapped")), "GET", {})

    assert body == {"items": [{"name": "w"}]}


@pytest.mark.asyncio
async def test_non_2xx_status_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        url = str(server.make_url("/broken"))
        with pytest.raises(StoreTransportError) as exc_info:
            await HttpTransport(session).send(url, "GET", {})

    assert exc_info.value.status_code == 500
    assert exc_info.value.url == url


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        with pytest.raises(StoreTransportError, match="Invalid JSON"):
            await HttpTransport(session).send(str(server.make_url("/garbage")), "GET", {})


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    server = test_utils.TestServer(_app())
    await server.start_server()
    url = str(server.make_url("/search"))
    await server.close()

    async with aiohttp.ClientSession() as session:
        with pytest.raises(StoreTransportError, match="failed"):
            await HttpTransport(session).send(url, "GET", {})


@pytest.mark.asyncio
async def test_unsupported_method_is_rejected() -> None:
    async with aiohttp.ClientSession() as session:
        with pytest.raises(ValueError):
            await HttpTransport(session).send("http://localhost/", "PUT", {})


@pytest.mark.asyncio
async def test_store_context_manager_owns_its_http_session() -> None:
    async with test_utils.TestServer(_app()) as server:
        config = StoreConfig(url=str(server.make_url("/search")), request_method="post")
        async with QueryReadStore(config) as store:
            items = await store.fetch(FetchRequest(query={"name": "ac"}))
            assert [store.get_value(i, "name") for i in items] == ["ac"]
            assert store.get_value(items[0], "method") == "POST"
            assert store.is_item(items[0])

    with pytest.raises(QueryReadError, match="not initialized"):
        await store.fetch(FetchRequest(query={"name": "other"}))


@pytest.mark.asyncio
async def test_body_that_is_not_valid_utf8_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        with pytest.raises(StoreTransportError, match="not valid utf-8") as exc_info:
            await HttpTransport(session).send(str(server.make_url("/bad-utf8")), "GET", {})

    assert exc_info.value.status_code == 200
    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


@pytest.mark.asyncio
async def test_undecodable_body_reaches_fetch_error_callback() -> None:
    seen: list[Exception] = []
    async with test_utils.TestServer(_app()) as server:
        async with QueryReadStore(StoreConfig(url=str(server.make_url("/bad-utf8")))) as store:
            with pytest.raises(StoreTransportError):
                await asyncio.wait_for(
                    store.fetch(FetchRequest(query={"q": "a"}, on_error=lambda exc, req: seen.append(exc))),
                    3,
                )
            assert store.items == []

    assert len(seen) == 1


@pytest.mark.asyncio
async def test_params_are_not_redacted_unless_debug_logging(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def _fail(*args: object, **kwargs: object) -> object:
        raise AssertionError("redact_for_log called with DEBUG disabled")

    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        url = str(server.make_url("/search"))
        with monkeypatch.context() as m:
            m.setattr(transport_module, "redact_for_log", _fail)
            caplog.set_level(logging.INFO, logger="queryread._transport")
            await HttpTransport(session).send(url, "GET", {"q": "a"})

        caplog.set_level(logging.DEBUG, logger="queryread._transport")
        await HttpTransport(session).send(url, "GET", {"q": "a", "api_key": "secret"})

    messages = [r.getMessage() for r in caplog.records if r.name == "queryread._transport"]
    assert len(messages) == 1
    assert "<redacted>" in messages[0]
    assert "secret" not in messages[0]
