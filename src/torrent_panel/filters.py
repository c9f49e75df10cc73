"""
Pure derivations over Store values: peer table and torrent list ordering.

Sorting is stable, so rows that compare equal keep the order the client sent
them in, whichever direction is selected.
"""

from __future__ import annotations

import math
from typing import Iterable, Literal, NamedTuple, get_args

from .formatters import torrent_display_name
from .models import (
    PEER_STATE_NOT_NEEDED,
    STATE_ERROR,
    STATE_LIVE,
    STATE_PAUSED,
    PeerStats,
    TorrentDetails,
    TorrentId,
    TorrentStats,
)
from .state import PeerSpeed, PeersSnapshot

SortDirection = Literal["asc", "desc"]

PeerSortColumn = Literal["address", "state", "conn_kind", "downloaded", "uploaded", "down_speed", "up_speed"]
PEER_SORT_COLUMNS: tuple[str, ...] = get_args(PeerSortColumn)

TorrentSortColumn = Literal["id", "name", "size", "progress", "down_speed", "up_speed", "eta"]
TORRENT_SORT_COLUMNS: tuple[str, ...] = get_args(TorrentSortColumn)

StatusFilter = Literal["all", "downloading", "seeding", "paused", "error"]
STATUS_FILTERS: tuple[str, ...] = get_args(StatusFilter)

PEER_COLUMN_LABELS = {
    "address": "Address",
    "state": "State",
    "conn_kind": "Conn. Kind",
    "downloaded": "Downloaded",
    "uploaded": "Uploaded",
    "down_speed": "Down Speed",
    "up_speed": "Up Speed",
}

TORRENT_COLUMN_LABELS = {
    "id": "ID",
    "name": "Name",
    "size": "Size",
    "progress": "Progress",
    "down_speed": "Down Speed",
    "up_speed": "Up Speed",
    "eta": "ETA",
}


class PeerRow(NamedTuple):
    address: str
    stats: PeerStats
    speed: PeerSpeed


class TorrentRow(NamedTuple):
    torrent: TorrentId
    stats: TorrentStats | None
    details: TorrentDetails | None

    @property
    def name(self) -> str:
        return torrent_display_name(self.details)


def _peer_sort_value(row: PeerRow, column: str) -> str | float:
    if column == "address":
        return row.address
    if column == "state":
        return row.stats.state
    if column == "conn_kind":
        return row.stats.conn_kind or ""
    if column == "downloaded":
        return row.stats.counters.fetched_bytes
    if column == "uploaded":
        return row.stats.counters.uploaded_bytes
    if column == "down_speed":
        return row.speed.download
    if column == "up_speed":
        return row.speed.upload
    raise ValueError(f"Unknown peer sort column: {column}")


def sort_peers(
    snapshot: PeersSnapshot | None,
    column: PeerSortColumn = "downloaded",
    direction: SortDirection = "desc",
    show_all: bool = False,
) -> list[PeerRow]:
    """
    Rows of the peer table.

    Peers in the "not needed" state are hidden unless show_all is set.
    """
    if snapshot is None:
        return []

    rows = [
        PeerRow(address, stats, snapshot.speed(address))
        for address, stats in snapshot.peers.items()
        if show_all or stats.state != PEER_STATE_NOT_NEEDED
    ]
    return sorted(rows, key=lambda row: _peer_sort_value(row, column), reverse=direction == "desc")


def next_peer_sort(
    column: PeerSortColumn, direction: SortDirection, clicked: PeerSortColumn
) -> tuple[PeerSortColumn, SortDirection]:
    """Clicking the active column flips the direction, another column starts ascending."""
    if clicked == column:
        return column, "asc" if direction == "desc" else "desc"
    return clicked, "asc"


def torrent_rows(
    torrents: Iterable[TorrentId] | None,
    stats: dict[int, TorrentStats],
    details: dict[int, TorrentDetails],
) -> list[TorrentRow]:
    """Join the torrent list with the per-torrent Stores."""
    return [TorrentRow(t, stats.get(t.id), details.get(t.id)) for t in torrents or ()]


def matches_search(name: str | None, query: str) -> bool:
    if not query:
        return True
    return query.lower() in (name or "").lower()


def matches_status(row: TorrentRow, status: StatusFilter) -> bool:
    if status == "all":
        return True
    stats = row.stats
    if stats is None:
        return False
    if status == "downloading":
        return stats.state == STATE_LIVE and not stats.finished
    if status == "seeding":
        return stats.state == STATE_LIVE and stats.finished
    if status == "paused":
        return stats.state == STATE_PAUSED
    if status == "error":
        return stats.state == STATE_ERROR
    raise ValueError(f"Unknown status filter: {status}")


def _torrent_sort_value(row: TorrentRow, column: str) -> str | float:
    stats = row.stats
    if column == "id":
        return row.torrent.id
    if column == "name":
        return row.name.lower()
    if column == "size":
        return stats.snapshot.total_bytes if stats else 0
    if column == "progress":
        if stats is None or stats.snapshot.total_bytes <= 0:
            return 0.0
        return stats.snapshot.have_bytes / stats.snapshot.total_bytes
    if column == "down_speed":
        return stats.download_speed.mbps if stats else 0.0
    if column == "up_speed":
        return stats.upload_speed.mbps if stats else 0.0
    if column == "eta":
        if stats is None or stats.state != STATE_LIVE:
            return math.inf
        remaining = stats.snapshot.total_bytes - stats.snapshot.have_bytes
        speed = stats.download_speed.mbps
        if remaining <= 0:
            return 0.0
        if speed <= 0:
            return math.inf
        return remaining / (speed * 1024 * 1024)
    raise ValueError(f"Unknown torrent sort column: {column}")


def visible_torrents(
    rows: Iterable[TorrentRow],
    query: str = "",
    status: StatusFilter = "all",
    column: TorrentSortColumn = "id",
    direction: SortDirection = "asc",
) -> list[TorrentRow]:
    """Filter by name search and status, then sort."""
    matching = [row for row in rows if matches_search(row.name, query) and matches_status(row, status)]
    return sorted(matching, key=lambda row: _torrent_sort_value(row, column), reverse=direction == "desc")
