"""Spotify tools exposed over MCP."""

from spotify_mcp.server.registry import ToolRegistry
from spotify_mcp.server.tools.browse import register_browse_tools
from spotify_mcp.server.tools.context import register_context_tools
from spotify_mcp.server.tools.personalization import register_personalization_tools
from spotify_mcp.server.tools.playlists import register_playlist_tools


def register_all_tools(registry: ToolRegistry) -> None:
    """Register every Spotify tool on the registry."""
    register_context_tools(registry)
    register_browse_tools(registry)
    register_personalization_tools(registry)
    register_playlist_tools(registry)


__all__ = ["register_all_tools"]
