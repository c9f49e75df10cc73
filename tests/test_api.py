"""Tests for the HTTP API client against a local aiohttp server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from torrent_panel.api import ApiError, HttpTorrentApi

STATS = {
    "state": "live",
    "snapshot": {"have_bytes": 10, "total_bytes": 20},
    "download_speed": {"mbps": 1.0, "human_readable": "1.00 MiB/s"},
}


def _make_app() -> web.Application:
    routes = web.RouteTableDef()

    @routes.get("/")
    async def version(request: web.Request) -> web.Response:
        return web.json_response({"apis": {}, "version": "8.0.0"})

    @routes.get("/torrents")
    async def torrents(request: web.Request) -> web.Response:
        return web.json_response({"torrents": [{"id": 0, "info_hash": "aa"}]})

    @routes.get("/torrents/{id}")
    async def details(request: web.Request) -> web.Response:
        if request.match_info["id"] != "0":
            return web.json_response({"error_kind": "not_found", "human_readable": "torrent not found"}, status=404)
        return web.json_response({"name": "zero", "info_hash": "aa", "files": []})

    @routes.get("/torrents/{id}/stats")
    async def stats(request: web.Request) -> web.Response:
        return web.json_response(STATS)

    @routes.get("/torrents/{id}/peer_stats")
    async def peer_stats(request: web.Request) -> web.Response:
        state = request.query.get("state", "")
        return web.json_response(
            {"peers": {f"{state}:1": {"state": "live", "counters": {"fetched_bytes": 3}}}}
        )

    @routes.get("/stats")
    async def session(request: web.Request) -> web.Response:
        return web.json_response({"fetched_bytes": 99, "uploaded_bytes": 1, "uptime_seconds": 5})

    @routes.get("/broken")
    async def broken(request: web.Request) -> web.Response:
        return web.Response(text="upstream exploded", status=502)

    @routes.get("/garbage")
    async def garbage(request: web.Request) -> web.Response:
        return web.Response(text="{not json", content_type="application/json")

    @routes.get("/slow")
    async def slow(request: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.json_response({})

    app = web.Application()
    app.add_routes(routes)
    return app


def _base_url(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


@pytest_asyncio.fixture
async def server():
    test_server = TestServer(_make_app())
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest_asyncio.fixture
async def api(server: TestServer):
    client = HttpTorrentApi(_base_url(server), timeout=5)
    yield client
    await client.close()


class TestEndpoints:
    """Tests for response parsing of each endpoint."""

    @pytest.mark.asyncio
    async def test_list_torrents(self, api: HttpTorrentApi) -> None:
        response = await api.list_torrents()
        assert response.torrents[0].info_hash == "aa"

    @pytest.mark.asyncio
    async def test_details(self, api: HttpTorrentApi) -> None:
        details = await api.get_torrent_details(0)
        assert details.name == "zero"

    @pytest.mark.asyncio
    async def test_stats(self, api: HttpTorrentApi) -> None:
        stats = await api.get_torrent_stats(0)
        assert stats.snapshot.total_bytes == 20
        assert not stats.finished

    @pytest.mark.asyncio
    async def test_peer_stats_filter(self, api: HttpTorrentApi) -> None:
        live = await api.get_peer_stats(0)
        everyone = await api.get_peer_stats(0, "all")
        assert list(live.peers) == ["live:1"]
        assert list(everyone.peers) == ["all:1"]

    @pytest.mark.asyncio
    async def test_session_stats(self, api: HttpTorrentApi) -> None:
        stats = await api.session_stats()
        assert stats.fetched_bytes == 99

    @pytest.mark.asyncio
    async def test_version(self, api: HttpTorrentApi) -> None:
        assert await api.get_version() == "8.0.0"


class TestErrors:
    """Tests for ApiError construction."""

    @pytest.mark.asyncio
    async def test_human_readable_error(self, api: HttpTorrentApi) -> None:
        with pytest.raises(ApiError) as exc_info:
            await api.get_torrent_details(42)
        error = exc_info.value
        assert error.status == 404
        assert error.text == "torrent not found"
        assert error.details().path == "/torrents/42"
        assert error.details().method == "GET"

    @pytest.mark.asyncio
    async def test_plain_text_error(self, api: HttpTorrentApi) -> None:
        with pytest.raises(ApiError) as exc_info:
            await api.request("GET", "/broken")
        assert exc_info.value.text == "upstream exploded"
        assert exc_info.value.status_text.startswith("502")

    @pytest.mark.asyncio
    async def test_invalid_json(self, api: HttpTorrentApi) -> None:
        with pytest.raises(ApiError) as exc_info:
            await api.request("GET", "/garbage")
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_timeout(self, server: TestServer) -> None:
        async with HttpTorrentApi(_base_url(server), timeout=0.05) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.request("GET", "/slow")
        assert exc_info.value.timed_out

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        async with HttpTorrentApi("http://127.0.0.1:1", timeout=2) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.list_torrents()
        assert exc_info.value.text == "network error"
        assert "GET /torrents" in str(exc_info.value)
