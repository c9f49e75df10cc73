"""Stores shared between the sync jobs and the UI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    ErrorWithLabel,
    PeerStats,
    SessionStats,
    TorrentDetails,
    TorrentId,
    TorrentStats,
)
from .store import Store


class StateModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TorrentListState(StateModel):
    """Torrent list plus loading flags; ``torrents`` stays None until the first success."""

    torrents: tuple[TorrentId, ...] | None = None
    loading: bool = False
    initially_loading: bool = False

    def ids(self) -> list[int]:
        return [t.id for t in self.torrents or ()]


class ErrorState(StateModel):
    closeable_error: ErrorWithLabel | None = None
    other_error: ErrorWithLabel | None = None


class PeerSpeed(StateModel):
    """Derived per-peer rates in bytes per second."""

    download: float = 0.0
    upload: float = 0.0


class PeersSnapshot(StateModel):
    """One poll of the peers view with the rates derived from it."""

    torrent_id: int
    show_all: bool = False
    timestamp: float = 0.0
    peers: dict[str, PeerStats] = Field(default_factory=dict)
    rates: dict[str, PeerSpeed] = Field(default_factory=dict)

    def speed(self, address: str) -> PeerSpeed:
        return self.rates.get(address) or PeerSpeed()


@dataclass
class PanelState:
    """
    Every Store of the panel.

    Jobs receive this object at construction and only write to it; the UI
    reads and subscribes.
    """

    torrents: Store[TorrentListState] = field(default_factory=lambda: Store(TorrentListState(), "torrents"))
    torrent_stats: Store[dict[int, TorrentStats]] = field(default_factory=lambda: Store({}, "torrent_stats"))
    torrent_details: Store[dict[int, TorrentDetails]] = field(default_factory=lambda: Store({}, "torrent_details"))
    peers: Store[PeersSnapshot | None] = field(default_factory=lambda: Store(None, "peers"))
    session_stats: Store[SessionStats] = field(default_factory=lambda: Store(SessionStats(), "session_stats"))
    errors: Store[ErrorState] = field(default_factory=lambda: Store(ErrorState(), "errors"))
    version: Store[str | None] = field(default_factory=lambda: Store(None, "version"))

    def set_torrent_stats(self, torrent_id: int, stats: TorrentStats) -> None:
        self.torrent_stats.update(lambda current: {**current, torrent_id: stats})

    def set_torrent_details(self, torrent_id: int, details: TorrentDetails) -> None:
        self.torrent_details.update(lambda current: {**current, torrent_id: details})

    def drop_torrents(self, torrent_ids: Iterable[int]) -> None:
        """Remove the stats and details slots of torrents that are gone."""
        gone = set(torrent_ids)
        if not gone:
            return
        if gone & self.torrent_stats.get().keys():
            self.torrent_stats.update(lambda current: {k: v for k, v in current.items() if k not in gone})
        if gone & self.torrent_details.get().keys():
            self.torrent_details.update(lambda current: {k: v for k, v in current.items() if k not in gone})

    def set_other_error(self, error: ErrorWithLabel | None) -> None:
        if self.errors.get().other_error != error:
            self.errors.update(lambda current: current.model_copy(update={"other_error": error}))

    def set_closeable_error(self, error: ErrorWithLabel | None) -> None:
        self.errors.update(lambda current: current.model_copy(update={"closeable_error": error}))
