"""Pydantic models for the torrent client HTTP API payloads.

Every response is parsed into one of these models as soon as it arrives, so
the rest of the panel never has to guess at the shape of a dict.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

STATE_INITIALIZING = "initializing"
STATE_PAUSED = "paused"
STATE_LIVE = "live"
STATE_ERROR = "error"

PEER_STATE_NOT_NEEDED = "not_needed"

PeerFilter = Literal["live", "all"]


class ApiModel(BaseModel):
    """Base for API payloads: immutable, unknown fields ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class TorrentId(ApiModel):
    """Entry of the torrent list."""

    id: int
    info_hash: str


class ListTorrentsResponse(ApiModel):
    torrents: tuple[TorrentId, ...] = ()


class TorrentFile(ApiModel):
    """A file inside a torrent."""

    name: str
    components: tuple[str, ...] = ()
    length: int
    included: bool = True


class TorrentDetails(ApiModel):
    """Metadata of a torrent, available once the info dictionary is known."""

    name: str | None = None
    info_hash: str
    files: tuple[TorrentFile, ...] = ()


class Speed(ApiModel):
    mbps: float = 0.0
    human_readable: str = "N/A"


class AggregatePeerStats(ApiModel):
    """Peer counts of a torrent, grouped by connection state."""

    queued: int = 0
    connecting: int = 0
    live: int = 0
    seen: int = 0
    dead: int = 0
    not_needed: int = 0


class StatsSnapshot(ApiModel):
    have_bytes: int = 0
    total_bytes: int = 0
    fetched_bytes: int = 0
    uploaded_bytes: int = 0
    downloaded_and_checked_bytes: int = 0
    remaining_bytes: int = 0
    peer_stats: AggregatePeerStats = Field(default_factory=AggregatePeerStats)


class Duration(ApiModel):
    secs: int = 0


class TimeRemaining(ApiModel):
    human_readable: str = ""
    duration: Duration | None = None


class TorrentStats(ApiModel):
    """Live statistics of a single torrent."""

    state: str = STATE_LIVE
    error: str | None = None
    snapshot: StatsSnapshot = Field(default_factory=StatsSnapshot)
    download_speed: Speed = Field(default_factory=Speed)
    upload_speed: Speed = Field(default_factory=Speed)
    time_remaining: TimeRemaining | None = None

    @computed_field
    @property
    def finished(self) -> bool:
        """True once every byte of the torrent is present."""
        return self.snapshot.have_bytes == self.snapshot.total_bytes

    @computed_field
    @property
    def progress_percent(self) -> float:
        if self.snapshot.total_bytes <= 0:
            return 0.0
        return self.snapshot.have_bytes / self.snapshot.total_bytes * 100.0


class PeerCounters(ApiModel):
    fetched_bytes: int = 0
    uploaded_bytes: int = 0
    errors: int = 0
    fetched_chunks: int = 0
    downloaded_and_checked_pieces: int = 0


class PeerStats(ApiModel):
    """Stats of one peer connection as reported by the client."""

    state: str
    conn_kind: str | None = None
    counters: PeerCounters = Field(default_factory=PeerCounters)


class PeerStatsSnapshot(ApiModel):
    """Peer stats keyed by peer address, in the order the client sent them."""

    peers: dict[str, PeerStats] = Field(default_factory=dict)


class SessionCounters(ApiModel):
    fetched_bytes: int = 0
    uploaded_bytes: int = 0


class SessionStats(ApiModel):
    """Session-wide statistics shown in the footer."""

    download_speed: Speed = Field(default_factory=Speed)
    upload_speed: Speed = Field(default_factory=Speed)
    fetched_bytes: int = 0
    uploaded_bytes: int = 0
    uptime_seconds: int = 0
    counters: SessionCounters | None = None
    peers: AggregatePeerStats = Field(default_factory=AggregatePeerStats)


class ErrorDetails(ApiModel):
    """What went wrong with a request, for display."""

    method: str | None = None
    path: str | None = None
    status: int | None = None
    status_text: str | None = None
    text: str = ""
    timed_out: bool = False


class ErrorWithLabel(ApiModel):
    text: str
    details: ErrorDetails | None = None
