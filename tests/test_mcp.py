"""Tests for the MCP server surface."""

import pytest
from conftest import FakeApi, FakeSleep, make_peers, make_stats
from fastmcp import Client, FastMCP

from torrent_panel.engine import SyncEngine
from torrent_panel.filters import sort_peers, torrent_rows
from torrent_panel.mcp_server import create_server
from torrent_panel.mcp_server.summaries import describe_torrent, summarize_peer, summarize_session, summarize_torrent
from torrent_panel.mcp_server.tools import ensure_running
from torrent_panel.models import ErrorWithLabel, SessionStats, Speed, TorrentDetails, TorrentFile, TorrentId
from torrent_panel.state import PeerSpeed, PeersSnapshot


@pytest.fixture
def engine(fake_api: FakeApi, fake_sleep: FakeSleep) -> SyncEngine:
    return SyncEngine(fake_api, sleep=fake_sleep)


class TestSummaries:
    """Tests for Store value conversions."""

    def test_torrent_without_stats(self) -> None:
        row = torrent_rows([TorrentId(id=1, info_hash="ab" * 20)], {}, {})[0]
        summary = summarize_torrent(row)
        assert summary.name == "ab" * 20
        assert summary.state is None
        assert summary.eta == "N/A"

    def test_torrent_with_stats_and_files(self) -> None:
        details = TorrentDetails(
            name="debian",
            info_hash="aa",
            files=(TorrentFile(name="debian.iso", length=2048),),
        )
        row = torrent_rows([TorrentId(id=1, info_hash="aa")], {1: make_stats(25, 100)}, {1: details})[0]

        info = describe_torrent(row)

        assert info.name == "debian"
        assert info.progress_percent == 25.0
        assert info.live_peers == 3
        assert info.eta == "1m 5s"
        assert info.files[0].size_formatted == "2.00 KB"

    def test_peer(self) -> None:
        peers = make_peers({"1.2.3.4:6881": 4096})
        snapshot = PeersSnapshot(torrent_id=1, peers=peers.peers, rates={"1.2.3.4:6881": PeerSpeed(download=2048.0)})
        summary = summarize_peer(sort_peers(snapshot)[0])
        assert summary.download_speed == "2.00 KB/s"
        assert summary.downloaded_bytes == 4096
        assert summary.conn_kind == "tcp"

    def test_session(self) -> None:
        stats = SessionStats(download_speed=Speed(mbps=1.0, human_readable="1.00 MiB/s"), uptime_seconds=3700)
        summary = summarize_session(stats, "8.1.0")
        assert summary.uptime == "1h 1m"
        assert summary.version == "8.1.0"


class TestServer:
    """Tests for the FastMCP server wiring."""

    def test_create_server(self, engine: SyncEngine) -> None:
        assert isinstance(create_server(engine), FastMCP)

    @pytest.mark.asyncio
    async def test_tools_registered(self, engine: SyncEngine) -> None:
        async with Client(create_server(engine)) as client:
            tools = {tool.name for tool in await client.list_tools()}
        assert {
            "list_torrents",
            "get_torrent",
            "open_peers",
            "get_peers",
            "close_peers",
            "get_session_stats",
            "refresh_torrents",
        } <= tools

    @pytest.mark.asyncio
    async def test_errors_resource(self, engine: SyncEngine) -> None:
        engine.state.set_other_error(ErrorWithLabel(text="Error refreshing torrents"))
        async with Client(create_server(engine)) as client:
            contents = await client.read_resource("panel://errors")
        assert "Error refreshing torrents" in contents[0].text

    @pytest.mark.asyncio
    async def test_ensure_running_fetches_list(self, engine: SyncEngine, fake_api: FakeApi) -> None:
        fake_api.torrents = [TorrentId(id=0, info_hash="aa")]

        await ensure_running(engine)

        assert engine.started
        assert engine.state.torrents.get().ids() == [0]
        engine.stop()
