"""
Formatting helpers for displaying torrents, peers and session stats.
"""

from __future__ import annotations

from .models import TorrentDetails, TorrentStats


def format_bytes(size_bytes: float) -> str:
    """Format bytes into a human-readable size string."""
    sign = "-" if size_bytes < 0 else ""
    size = abs(float(size_bytes))
    if size < 1024.0:
        return f"{sign}{int(size)} B"
    for unit in ["KB", "MB", "GB", "TB"]:
        size /= 1024.0
        if size < 1024.0:
            return f"{sign}{size:.2f} {unit}"
    return f"{sign}{size / 1024.0:.2f} PB"


def format_speed(bytes_per_sec: float) -> str:
    return f"{format_bytes(bytes_per_sec)}/s"


def format_seconds_to_time(seconds: int) -> str:
    """
    Format a duration compactly, keeping the two most significant units.

    Examples: ``"1d 2h 3m"``, ``"2h 5m"``, ``"4m 10s"``, ``"7s"``.
    """
    seconds = max(0, int(seconds))
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)

    def unit(value: int, suffix: str) -> str:
        return f"{value}{suffix}" if value > 0 else ""

    if days > 0:
        parts = [unit(days, "d"), unit(hours, "h"), unit(minutes, "m")]
    elif hours > 0:
        parts = [unit(hours, "h"), unit(minutes, "m")]
    elif minutes > 0:
        parts = [unit(minutes, "m"), unit(secs, "s")]
    else:
        parts = [unit(secs, "s")]
    return " ".join(p for p in parts if p)


def completion_eta(stats: TorrentStats | None) -> str:
    """Remaining time of a torrent, or "N/A" when the client doesn't know it."""
    if stats is None or stats.time_remaining is None or stats.time_remaining.duration is None:
        return "N/A"
    return format_seconds_to_time(stats.time_remaining.duration.secs)


def largest_file_name(details: TorrentDetails) -> str | None:
    included = [f for f in details.files if f.included]
    if not included:
        return None
    largest = included[0]
    for f in included[1:]:
        if f.length > largest.length:
            largest = f
    return largest.name


def torrent_display_name(details: TorrentDetails | None) -> str:
    """The torrent's name, else its largest selected file, else its info hash."""
    if details is None:
        return ""
    if details.name:
        return details.name
    return largest_file_name(details) or details.info_hash
