"""MCP resources for browsing the panel state."""

from ..engine import SyncEngine
from ..formatters import format_speed


def register_resources(mcp, engine: SyncEngine) -> None:
    """Register all MCP resources with the server."""
    state = engine.state

    @mcp.resource("panel://errors")
    def resource_errors() -> str:
        """Errors currently shown in the panel."""
        errors = state.errors.get()
        lines = ["# Panel Errors\n"]
        for label, error in (("Closeable", errors.closeable_error), ("Other", errors.other_error)):
            if error is None:
                continue
            lines.append(f"## {label}: {error.text}")
            if error.details is not None:
                details = error.details
                if details.method:
                    lines.append(f"- **Request**: {details.method} {details.path}")
                if details.status_text:
                    lines.append(f"- **Status**: {details.status_text}")
                if details.text:
                    lines.append(f"- **Message**: {details.text}")
            lines.append("")

        if len(lines) == 1:
            return "No errors."
        return "\n".join(lines)

    @mcp.resource("panel://peers")
    def resource_peers() -> str:
        """Peers of the watched torrent with their derived speeds."""
        snapshot = state.peers.get()
        if snapshot is None:
            return "No peers view is open."

        lines = [f"# Peers of torrent {snapshot.torrent_id}\n"]
        for address, peer in snapshot.peers.items():
            speed = snapshot.speed(address)
            lines.append(f"- **{address}** ({peer.state}, {peer.conn_kind or 'N/A'})")
            lines.append(f"  ↓ {format_speed(speed.download)}  ↑ {format_speed(speed.upload)}\n")
        return "\n".join(lines)
