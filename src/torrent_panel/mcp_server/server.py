"""
MCP server setup and entry point.

Builds the sync engine, registers the tools and resources against it and
runs the FastMCP server.
"""

import argparse
import logging

from fastmcp import FastMCP

from ..api import HttpTorrentApi
from ..config import DEFAULT_API_URL, PanelConfig
from ..engine import SyncEngine
from .resources import register_resources
from .tools import register_tools


def create_server(engine: SyncEngine) -> FastMCP:
    """Create a FastMCP server bound to engine."""
    mcp = FastMCP(
        "Torrent Panel",
        instructions="Live view of a remote torrent client. "
        "Use the tools to list torrents, inspect one torrent, watch its peers and read session stats.",
    )
    register_tools(mcp, engine)
    register_resources(mcp, engine)
    return mcp


def main() -> None:
    """Run the MCP server."""
    parser = argparse.ArgumentParser(description="MCP server for a remote torrent client")
    parser.add_argument("--url", default=DEFAULT_API_URL, help=f"Torrent client API URL (default: {DEFAULT_API_URL})")
    parser.add_argument("--transport", choices=["stdio", "streamable-http", "sse"], default="stdio")
    parser.add_argument("--port", type=int, default=8000, help="Port for the HTTP transports (default: 8000)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    config = PanelConfig(api_url=args.url)
    engine = SyncEngine(HttpTorrentApi(config.api_url, config.request_timeout), config=config)
    mcp = create_server(engine)
    if args.transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=args.transport, port=args.port)


if __name__ == "__main__":
    main()
