"""OAuth authentication for Spotify MCP.

This package runs the Spotify Authorization Code flow over a loopback
redirect and keeps the resulting tokens in an in-memory CredentialStore.

Quick Start:
    ```python
    from spotify_mcp.auth import CredentialStore, OAuthManager
    from spotify_mcp.config import SpotifySettings

    settings = SpotifySettings.from_env()
    store = CredentialStore(settings.access_token, settings.refresh_token)
    manager = OAuthManager(settings, store)

    # Authenticate (opens the browser and waits for the redirect)
    token = await manager.authenticate()
    ```
"""

from spotify_mcp.auth.models import (
    AuthorizationRequest,
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenSource,
    TokenStatus,
)
from spotify_mcp.auth.oauth_manager import SPOTIFY_SCOPES, AuthorizationFlow, OAuthManager
from spotify_mcp.auth.token_storage import CredentialStore

__all__ = [
    "AuthorizationFlow",
    "AuthorizationRequest",
    "CredentialStore",
    "OAuthManager",
    "OAuthToken",
    "StoredToken",
    "TokenMetadata",
    "TokenSource",
    "TokenStatus",
    "SPOTIFY_SCOPES",
]
