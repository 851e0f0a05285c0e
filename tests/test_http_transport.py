from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from querycycle import HttpTransport, QueryConfig, QueryManager, QueryStatus
from querycycle._cancellation import CancellationToken
from querycycle._transport import TransportRequest, encode_params
from querycycle.exceptions import QueryCancelledError, QueryTransportError

_PROJECTS = [{"id": i, "title": f"Project {i}"} for i in range(1, 6)]


def _build_app(received: list[dict[str, str]]) -> web.Application:
    async def projects(request: web.Request) -> web.Response:
        params = dict(request.query)
        received.append(params)
        if "ids" in params:
            ids = {int(v) for v in params["ids"].split(",")}
            results = [{**p, "task_count": p["id"] * 10} for p in _PROJECTS if p["id"] in ids]
            return web.json_response({"results": results, "count": len(_PROJECTS)})
        page = int(params.get("page", "1"))
        size = int(params.get("page_size", "2"))
        start = (page - 1) * size
        return web.json_response({"results": _PROJECTS[start : start + size], "count": len(_PROJECTS)})

    async def broken(_request: web.Request) -> web.Response:
        return web.Response(status=503, text="maintenance")

    async def not_json(_request: web.Request) -> web.Response:
        return web.Response(text="<html>")

    async def slow(_request: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.json_response({})

    app = web.Application()
    app.router.add_get("/projects", projects)
    app.router.add_get("/broken", broken)
    app.router.add_get("/not-json", not_json)
    app.router.add_get("/slow", slow)
    return app


@pytest.fixture
def received() -> list[dict[str, str]]:
    return []


@pytest_asyncio.fixture
async def server(received: list[dict[str, str]]) -> AsyncIterator[test_utils.TestServer]:
    async with test_utils.TestServer(_build_app(received)) as test_server:
        yield test_server


@pytest_asyncio.fixture
async def http() -> AsyncIterator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as session:
        yield session


def _request(query: dict[str, Any], *, hydrate: bool = False) -> TransportRequest:
    return TransportRequest(query=query, token=CancellationToken(1), hydrate=hydrate)


def _no_declare(_spec: Any) -> None:
    raise AssertionError("declare_hydration should not be called")


def test_encode_params() -> None:
    assert encode_params({"page": 2, "ids": [1, 2, 3], "archived": False, "q": None, "ratio": 0.5}) == {
        "page": 2,
        "ids": "1,2,3",
        "archived": "false",
        "ratio": 0.5,
    }


@pytest.mark.asyncio
async def test_fetches_json_with_query_params(
    server: test_utils.TestServer, http: aiohttp.ClientSession, received: list[dict[str, str]]
) -> None:
    transport = HttpTransport(http, str(server.make_url("/projects")))

    payload = await transport(_request({"page": 2, "page_size": 2}), _no_declare)

    assert [p["id"] for p in payload["results"]] == [3, 4]
    assert received == [{"page": "2", "page_size": "2"}]


@pytest.mark.asyncio
async def test_hydrate_params_only_sent_on_hydration(
    server: test_utils.TestServer, http: aiohttp.ClientSession, received: list[dict[str, str]]
) -> None:
    transport = HttpTransport(http, str(server.make_url("/projects")), hydrate_params={"include": "task_count"})

    await transport(_request({"page": 1}), _no_declare)
    await transport(_request({"ids": [1]}, hydrate=True), _no_declare)

    assert "include" not in received[0]
    assert received[1] == {"ids": "1", "include": "task_count"}


@pytest.mark.asyncio
async def test_non_2xx_raises_transport_error(server: test_utils.TestServer, http: aiohttp.ClientSession) -> None:
    transport = HttpTransport(http, str(server.make_url("/broken")))

    with pytest.raises(QueryTransportError) as exc_info:
        await transport(_request({}), _no_declare)

    assert exc_info.value.status_code == 503
    assert "maintenance" in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error(server: test_utils.TestServer, http: aiohttp.ClientSession) -> None:
    transport = HttpTransport(http, str(server.make_url("/not-json")))

    with pytest.raises(QueryTransportError, match="Invalid JSON"):
        await transport(_request({}), _no_declare)


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(server: test_utils.TestServer, http: aiohttp.ClientSession) -> None:
    transport = HttpTransport(http, str(server.make_url("/slow")), config=QueryConfig(request_timeout=0.1))

    with pytest.raises(QueryTransportError, match="timed out"):
        await transport(_request({}), _no_declare)


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error(http: aiohttp.ClientSession) -> None:
    transport = HttpTransport(http, "http://127.0.0.1:9/projects", config=QueryConfig(request_timeout=2.0))

    with pytest.raises(QueryTransportError):
        await transport(_request({}), _no_declare)


@pytest.mark.asyncio
async def test_already_cancelled_token_short_circuits(
    http: aiohttp.ClientSession, received: list[dict[str, str]]
) -> None:
    transport = HttpTransport(http, "http://127.0.0.1:9/unused")
    request = _request({})
    request.token.cancel("reset")

    with pytest.raises(QueryCancelledError):
        await transport(request, _no_declare)
    assert received == []


@pytest.mark.asyncio
async def test_cancelling_token_interrupts_in_flight_request(
    server: test_utils.TestServer, http: aiohttp.ClientSession
) -> None:
    transport = HttpTransport(http, str(server.make_url("/slow")))
    request = _request({})

    task = asyncio.create_task(transport(request, _no_declare))
    await asyncio.sleep(0.05)
    request.token.cancel("user navigated away")

    with pytest.raises(QueryCancelledError, match="navigated away"):
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_manager_with_http_transport_hydrates_discovered_ids(
    server: test_utils.TestServer, http: aiohttp.ClientSession, received: list[dict[str, str]]
) -> None:
    transport = HttpTransport(
        http,
        str(server.make_url("/projects")),
        hydrate_params={"include": "task_count"},
        discover_hydration=lambda payload: {"ids": [p["id"] for p in payload["results"]]},
    )

    async with QueryManager(transport, {"query": {"page": 1, "page_size": 2}, "hydrate": {}}) as manager:
        snapshot = manager.snapshot
        assert snapshot.status == QueryStatus.HYDRATED
        assert [p["task_count"] for p in snapshot.data["results"]] == [10, 20]

        await manager.request({"query": {"page": 2}})
        assert [p["id"] for p in manager.snapshot.data["results"]] == [3, 4]

    assert received[0] == {"page": "1", "page_size": "2"}
    assert received[1] == {"ids": "1,2", "include": "task_count"}
    assert received[2] == {"page": "2", "page_size": "2"}
    assert received[3] == {"ids": "3,4", "include": "task_count"}
