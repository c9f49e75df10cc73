"""Shared fakes for the sync engine tests."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from torrent_panel.api import ApiError
from torrent_panel.models import (
    ListTorrentsResponse,
    PeerStatsSnapshot,
    SessionStats,
    TorrentDetails,
    TorrentId,
    TorrentStats,
)


class FakeSleep:
    """Records requested delays and yields to the event loop instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeApi:
    """In-memory TorrentApi with scriptable failures."""

    def __init__(self) -> None:
        self.torrents: list[TorrentId] = []
        self.stats: dict[int, TorrentStats] = {}
        self.details: dict[int, TorrentDetails] = {}
        self.peers: dict[int, PeerStatsSnapshot] = {}
        self.session = SessionStats()
        self.version = "8.1.0"
        self.failures: dict[str, int] = {}
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None

    def fail(self, method: str, times: int = 1) -> None:
        self.failures[method] = times

    async def _call(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if self.gate is not None:
            await self.gate.wait()
        remaining = self.failures.get(method, 0)
        if remaining > 0:
            self.failures[method] = remaining - 1
            raise ApiError("internal error", method="GET", path=f"/{method}", status=500, status_text="500 Internal")

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def list_torrents(self) -> ListTorrentsResponse:
        await self._call("list_torrents")
        return ListTorrentsResponse(torrents=tuple(self.torrents))

    async def get_torrent_details(self, torrent_id: int) -> TorrentDetails:
        await self._call("get_torrent_details", torrent_id)
        if torrent_id not in self.details:
            raise ApiError("metadata not ready", status=404, status_text="404 Not Found")
        return self.details[torrent_id]

    async def get_torrent_stats(self, torrent_id: int) -> TorrentStats:
        await self._call("get_torrent_stats", torrent_id)
        return self.stats.get(torrent_id, TorrentStats())

    async def get_peer_stats(self, torrent_id: int, state: str = "live") -> PeerStatsSnapshot:
        await self._call("get_peer_stats", torrent_id, state)
        return self.peers.get(torrent_id, PeerStatsSnapshot())

    async def session_stats(self) -> SessionStats:
        await self._call("session_stats")
        return self.session

    async def get_version(self) -> str:
        await self._call("get_version")
        return self.version


async def wait_until(predicate: Callable[[], bool], limit: int = 2000) -> None:
    """Yield to the event loop until predicate holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def spin(times: int = 50) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


def make_stats(have: int, total: int, state: str = "live") -> TorrentStats:
    return TorrentStats.model_validate(
        {
            "state": state,
            "snapshot": {"have_bytes": have, "total_bytes": total, "peer_stats": {"live": 3, "seen": 10}},
            "download_speed": {"mbps": 1.5, "human_readable": "1.50 MiB/s"},
            "time_remaining": {"human_readable": "1m", "duration": {"secs": 65}},
        }
    )


def make_peers(fetched: dict[str, int], state: str = "live") -> PeerStatsSnapshot:
    """Peers keyed by address with the given fetched byte counters."""
    return PeerStatsSnapshot.model_validate(
        {
            "peers": {
                address: {"state": state, "conn_kind": "tcp", "counters": {"fetched_bytes": value}}
                for address, value in fetched.items()
            }
        }
    )


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
