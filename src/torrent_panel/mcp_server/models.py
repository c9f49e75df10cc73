"""Pydantic models returned by the MCP tools."""

from pydantic import BaseModel


class TorrentFileInfo(BaseModel):
    """A file inside a torrent."""

    name: str
    size_bytes: int
    size_formatted: str
    included: bool


class TorrentSummary(BaseModel):
    """One row of the torrent list."""

    id: int
    info_hash: str
    name: str
    state: str | None = None  # "initializing", "paused", "live", "error"; None until stats arrive
    finished: bool = False
    progress_percent: float = 0.0
    have_bytes: int = 0
    total_bytes: int = 0
    total_formatted: str = "0 B"
    download_speed: str | None = None
    upload_speed: str | None = None
    eta: str = "N/A"
    live_peers: int = 0
    seen_peers: int = 0
    error: str | None = None


class TorrentInfo(TorrentSummary):
    """A torrent with its file list."""

    files: list[TorrentFileInfo] = []


class PeerSummary(BaseModel):
    """One row of the peer table."""

    address: str
    state: str
    conn_kind: str | None = None
    downloaded_bytes: int
    uploaded_bytes: int
    download_speed: str
    upload_speed: str
    download_bytes_per_sec: float
    upload_bytes_per_sec: float


class SessionSummary(BaseModel):
    """Session-wide transfer stats."""

    download_speed: str
    upload_speed: str
    fetched_bytes: int
    fetched_formatted: str
    uploaded_bytes: int
    uploaded_formatted: str
    uptime: str
    version: str | None = None
