"""Shared pytest fixtures for spotify-mcp tests.

This module provides reusable fixtures for credentials, the OAuth manager,
the authenticated client, and mocked Spotify endpoints.
"""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from spotify_mcp.auth.models import OAuthToken, StoredToken, TokenMetadata, TokenSource
from spotify_mcp.auth.oauth_manager import OAuthManager
from spotify_mcp.auth.token_storage import CredentialStore
from spotify_mcp.client import SpotifyClient
from spotify_mcp.config import SpotifySettings
from spotify_mcp.gate import InitializationGate
from tests.helpers import SpotifyApi, TokenEndpoint, get_free_port

# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_token() -> OAuthToken:
    """Create a valid, non-expired OAuth token."""
    return OAuthToken(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scopes=["user-read-private", "playlist-read-private", "user-top-read"],
        token_type="Bearer",
    )


@pytest.fixture
def expired_token() -> OAuthToken:
    """Create an expired OAuth token."""
    return OAuthToken(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        scopes=["user-read-private"],
        token_type="Bearer",
    )


@pytest.fixture
def stored_token(valid_token: OAuthToken) -> StoredToken:
    return StoredToken(token=valid_token, metadata=TokenMetadata(source=TokenSource.OAUTH_FLOW))


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def callback_port() -> int:
    return get_free_port()


@pytest.fixture
def settings(callback_port: int) -> SpotifySettings:
    """Settings with client credentials and a free loopback redirect port."""
    return SpotifySettings(
        client_id="test_client_id",
        client_secret="test_client_secret",  # pragma: allowlist secret
        redirect_uri=f"http://127.0.0.1:{callback_port}/callback",
    )


@pytest.fixture
def store() -> CredentialStore:
    return CredentialStore()


# =============================================================================
# Accounts Service Fixtures
# =============================================================================


@pytest.fixture
def token_endpoint() -> TokenEndpoint:
    return TokenEndpoint()


@pytest.fixture
def accounts_client(token_endpoint: TokenEndpoint) -> Generator[httpx.Client, None, None]:
    client = httpx.Client(transport=httpx.MockTransport(token_endpoint))
    yield client
    client.close()


@pytest.fixture
def oauth_manager(
    settings: SpotifySettings, store: CredentialStore, accounts_client: httpx.Client
) -> Generator[OAuthManager, None, None]:
    """OAuthManager wired to the mocked token endpoint.

    Any flow still pending at teardown is cancelled so its port is released.
    """
    manager = OAuthManager(settings, store, http_client=accounts_client)
    yield manager
    flow = manager.active_flow
    if flow is not None and not flow.done:
        flow.cancel()
        flow.result.exception(timeout=5)


# =============================================================================
# Spotify Web API Fixtures
# =============================================================================


@pytest.fixture
def spotify_api() -> SpotifyApi:
    return SpotifyApi()


@pytest.fixture
def spotify_client(
    store: CredentialStore, oauth_manager: OAuthManager, spotify_api: SpotifyApi
) -> SpotifyClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(spotify_api))
    return SpotifyClient(store, oauth_manager, http_client=http_client)


@pytest.fixture
def gate() -> InitializationGate:
    return InitializationGate()


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


# =============================================================================
# Tool Fixtures
# =============================================================================


@pytest.fixture
def tool_context(
    settings: SpotifySettings,
    store: CredentialStore,
    oauth_manager: OAuthManager,
    spotify_client: SpotifyClient,
    gate: InitializationGate,
):
    """ToolContext with a valid stored token and browser opening disabled."""
    from spotify_mcp.server.registry import ToolContext

    store.set("current-token", refresh="refresh-token", expires_in=3600, source=TokenSource.OAUTH_FLOW)
    return ToolContext(
        settings=settings,
        store=store,
        manager=oauth_manager,
        client=spotify_client,
        gate=gate,
        open_browser=False,
    )
