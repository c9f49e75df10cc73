"""Conversions from Store values to MCP tool results."""

from ..filters import PeerRow, TorrentRow
from ..formatters import completion_eta, format_bytes, format_seconds_to_time, format_speed
from ..models import SessionStats
from .models import PeerSummary, SessionSummary, TorrentFileInfo, TorrentInfo, TorrentSummary


def summarize_torrent(row: TorrentRow) -> TorrentSummary:
    """Flatten a torrent row into a summary."""
    summary = TorrentSummary(
        id=row.torrent.id,
        info_hash=row.torrent.info_hash,
        name=row.name or row.torrent.info_hash,
    )
    stats = row.stats
    if stats is None:
        return summary

    snapshot = stats.snapshot
    return summary.model_copy(
        update={
            "state": stats.state,
            "finished": stats.finished,
            "progress_percent": round(stats.progress_percent, 2),
            "have_bytes": snapshot.have_bytes,
            "total_bytes": snapshot.total_bytes,
            "total_formatted": format_bytes(snapshot.total_bytes),
            "download_speed": stats.download_speed.human_readable,
            "upload_speed": stats.upload_speed.human_readable,
            "eta": completion_eta(stats),
            "live_peers": snapshot.peer_stats.live,
            "seen_peers": snapshot.peer_stats.seen,
            "error": stats.error,
        }
    )


def describe_torrent(row: TorrentRow) -> TorrentInfo:
    """Summary plus the file list, when details are known."""
    files = []
    if row.details is not None:
        files = [
            TorrentFileInfo(
                name=f.name,
                size_bytes=f.length,
                size_formatted=format_bytes(f.length),
                included=f.included,
            )
            for f in row.details.files
        ]
    return TorrentInfo(**summarize_torrent(row).model_dump(), files=files)


def summarize_peer(row: PeerRow) -> PeerSummary:
    counters = row.stats.counters
    return PeerSummary(
        address=row.address,
        state=row.stats.state,
        conn_kind=row.stats.conn_kind,
        downloaded_bytes=counters.fetched_bytes,
        uploaded_bytes=counters.uploaded_bytes,
        download_speed=format_speed(row.speed.download),
        upload_speed=format_speed(row.speed.upload),
        download_bytes_per_sec=row.speed.download,
        upload_bytes_per_sec=row.speed.upload,
    )


def summarize_session(stats: SessionStats, version: str | None = None) -> SessionSummary:
    return SessionSummary(
        download_speed=stats.download_speed.human_readable,
        upload_speed=stats.upload_speed.human_readable,
        fetched_bytes=stats.fetched_bytes,
        fetched_formatted=format_bytes(stats.fetched_bytes),
        uploaded_bytes=stats.uploaded_bytes,
        uploaded_formatted=format_bytes(stats.uploaded_bytes),
        uptime=format_seconds_to_time(stats.uptime_seconds),
        version=version,
    )
