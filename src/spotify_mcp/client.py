"""Authenticated client for the Spotify Web API.

Every upstream call goes through ``SpotifyClient.request``. It attaches the
current access token from the CredentialStore and, when Spotify answers
401, refreshes the token once and retries the call once.
"""

import logging
from typing import Any

import httpx

from spotify_mcp.auth.oauth_manager import OAuthManager
from spotify_mcp.auth.token_storage import CredentialStore
from spotify_mcp.errors import (
    INITIALIZER_TOOL,
    AuthenticationExpiredError,
    ConfigurationError,
    SpotifyAPIError,
    TokenRefreshError,
    is_authorization_failure,
)

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"


class SpotifyClient:
    """Facade over the Spotify Web API with transparent token refresh.

    Attributes:
        store: Shared credential store; read on every request.
        manager: OAuth manager used to refresh tokens.
    """

    def __init__(
        self,
        store: CredentialStore,
        manager: OAuthManager,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = SPOTIFY_API_BASE,
    ) -> None:
        self.store = store
        self.manager = manager
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_access_token(self) -> str:
        """Get an access token that is not known to be expired.

        Raises:
            AuthenticationExpiredError: If no usable token exists and refreshing fails.
        """
        token = self.store.get()
        if token is None or (not token.access_token and not token.refresh_token):
            raise AuthenticationExpiredError(
                401,
                f"No Spotify credentials available. Call {INITIALIZER_TOOL} to authorize.",
            )

        if token.access_token and not token.is_expired(buffer_seconds=0):
            return token.access_token

        logger.info("Access token missing or expired, attempting refresh")
        try:
            refreshed = await self.manager.refresh_access_token(stale_token=token.access_token)
        except (TokenRefreshError, ConfigurationError) as e:
            raise AuthenticationExpiredError(401, str(e)) from e
        assert refreshed.access_token is not None  # nosec B101 - set by refresh
        return refreshed.access_token

    async def _send(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict[str, Any] | None,
        json_data: Any,
    ) -> dict[str, Any]:
        client = await self._get_http_client()
        response = await client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        if response.is_error:
            raise SpotifyAPIError.from_response(response)
        if response.status_code == 204 or not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Spotify Web API.

        On a 401 the token is refreshed once and the request retried once.
        If the refresh fails, the original 401 error is raised. Other
        upstream errors are raised unchanged.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: API path relative to the base URL (e.g. "/me").
            params: Optional query parameters.
            json_data: Optional JSON body.

        Returns:
            Decoded JSON response (empty dict for empty responses).

        Raises:
            SpotifyAPIError: If the request fails.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        access_token = await self._get_access_token()
        try:
            return await self._send(method, url, access_token, params, json_data)
        except SpotifyAPIError as original:
            if not is_authorization_failure(original):
                raise
            logger.info("Spotify rejected the access token; refreshing and retrying once")
            try:
                refreshed = await self.manager.refresh_access_token(stale_token=access_token)
            except (TokenRefreshError, ConfigurationError) as refresh_error:
                raise original from refresh_error

        assert refreshed.access_token is not None  # nosec B101 - set by refresh
        return await self._send(method, url, refreshed.access_token, params, json_data)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.request("GET", path, params=params)

    async def post(
        self, path: str, json_data: Any = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.request("POST", path, params=params, json_data=json_data)

    async def put(
        self, path: str, json_data: Any = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.request("PUT", path, params=params, json_data=json_data)

    async def delete(self, path: str, json_data: Any = None) -> dict[str, Any]:
        return await self.request("DELETE", path, json_data=json_data)

    async def get_current_user(self) -> dict[str, Any]:
        """Fetch the current user's profile."""
        return await self.get("/me")
