"""
MCP server exposing the torrent panel.

Lets an assistant read torrent, peer and session state through the Model
Context Protocol, backed by the same Stores as the terminal panel.
"""

from .server import create_server

__all__ = ["create_server"]
