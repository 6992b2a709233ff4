"""Spotify MCP server: Spotify Web API tools for AI agents."""

from spotify_mcp.__version__ import __version__

__all__ = ["__version__"]
