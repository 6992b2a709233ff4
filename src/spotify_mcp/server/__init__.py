"""MCP server implementation for Spotify.

Provides Spotify Web API tools for AI agents:

Context (1):
- get_initial_context: authorize, verify the connection, open the gate

Browse (3):
- search, get_new_releases, get_featured_playlists

Personalization (1):
- get_user_top_items

Playlists (6):
- get_user_playlists, create_playlist, update_playlist_details
- add_tracks_to_playlist, remove_tracks_from_playlist, reorder_playlist_tracks

Transport: Stdio (for Claude Desktop)
Authentication: OAuth 2.0 loopback flow with automatic token refresh
"""

from spotify_mcp.server.spotify_server import SpotifyServer, main


def create_server() -> SpotifyServer:
    """Create and configure a Spotify MCP server.

    Returns:
        SpotifyServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return SpotifyServer()


__all__ = ["create_server", "SpotifyServer", "main"]
