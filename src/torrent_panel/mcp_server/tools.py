"""MCP tools reading the panel Stores and driving the peers view."""

from typing import Any

from ..engine import SyncEngine
from ..filters import (
    PeerSortColumn,
    SortDirection,
    StatusFilter,
    TorrentSortColumn,
    sort_peers,
    torrent_rows,
    visible_torrents,
)
from .models import PeerSummary, SessionSummary, TorrentInfo, TorrentSummary
from .summaries import describe_torrent, summarize_peer, summarize_session, summarize_torrent


async def ensure_running(engine: SyncEngine) -> None:
    """Start the engine on first use and make sure the torrent list was fetched once."""
    if not engine.started:
        engine.start()
    if engine.state.torrents.get().torrents is None:
        await engine.refresh_torrents()


def register_tools(mcp, engine: SyncEngine) -> None:
    """Register all MCP tools with the server."""
    state = engine.state

    def rows():
        return torrent_rows(state.torrents.get().torrents, state.torrent_stats.get(), state.torrent_details.get())

    @mcp.tool()
    async def list_torrents(
        query: str = "",
        status: StatusFilter = "all",
        sort: TorrentSortColumn = "id",
        direction: SortDirection = "asc",
    ) -> list[TorrentSummary]:
        """
        List the torrents of the client.

        Args:
            query: Case-insensitive substring the torrent name must contain.
            status: One of "all", "downloading", "seeding", "paused", "error".
            sort: Column to sort by: id, name, size, progress, down_speed, up_speed, eta.
            direction: "asc" or "desc".

        Returns:
            One summary per matching torrent. Stats of torrents that were just
            discovered may still be missing.
        """
        await ensure_running(engine)
        return [summarize_torrent(row) for row in visible_torrents(rows(), query, status, sort, direction)]

    @mcp.tool()
    async def get_torrent(torrent_id: int) -> TorrentInfo | dict[str, str]:
        """
        Get the stats and file list of one torrent.

        Args:
            torrent_id: Id of the torrent as shown by list_torrents.
        """
        await ensure_running(engine)
        for row in rows():
            if row.torrent.id == torrent_id:
                return describe_torrent(row)
        return {"status": "not_found", "message": f"No torrent with id {torrent_id}"}

    @mcp.tool()
    async def open_peers(torrent_id: int, show_all: bool = False) -> dict[str, Any]:
        """
        Start watching the peers of a torrent.

        Speeds are derived from consecutive polls, so call get_peers a few
        seconds later for meaningful numbers. Only one torrent's peers are
        watched at a time.

        Args:
            torrent_id: Id of the torrent.
            show_all: Include peers that are not currently needed.
        """
        await ensure_running(engine)
        view = engine.open_peers_view(torrent_id, show_all)
        return {"status": "watching", "torrent_id": view.torrent_id, "show_all": view.show_all}

    @mcp.tool()
    async def get_peers(
        sort: PeerSortColumn = "downloaded",
        direction: SortDirection = "desc",
    ) -> list[PeerSummary] | dict[str, str]:
        """
        Get the peers of the watched torrent with their current speeds.

        Args:
            sort: address, state, conn_kind, downloaded, uploaded, down_speed or up_speed.
            direction: "asc" or "desc".
        """
        view = engine.peers_view
        if view is None:
            return {"status": "not_watching", "message": "Call open_peers first"}
        snapshot = state.peers.get()
        return [summarize_peer(row) for row in sort_peers(snapshot, sort, direction, view.show_all)]

    @mcp.tool()
    async def close_peers() -> dict[str, str]:
        """Stop watching peers."""
        engine.close_peers_view()
        return {"status": "closed"}

    @mcp.tool()
    async def get_session_stats() -> SessionSummary:
        """Get session-wide download/upload speed, totals and uptime."""
        await ensure_running(engine)
        return summarize_session(state.session_stats.get(), state.version.get())

    @mcp.tool()
    async def refresh_torrents() -> dict[str, str]:
        """Refresh the torrent list now instead of waiting for the next poll."""
        await ensure_running(engine)
        ok = await engine.refresh_torrents()
        return {"status": "refreshed" if ok else "error"}
