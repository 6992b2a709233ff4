"""Configuration for the Spotify MCP server.

Environment Variables:
    SPOTIFY_CLIENT_ID: Spotify application client ID (required for authorization)
    SPOTIFY_CLIENT_SECRET: Spotify application client secret (required for authorization)
    SPOTIFY_REDIRECT_URI: Loopback redirect URI (default: http://127.0.0.1:8000/callback)
    SPOTIFY_API_TOKEN: Pre-provisioned access token (optional)
    SPOTIFY_REFRESH_TOKEN: Pre-provisioned refresh token (optional)
    MAX_TOOL_TOKEN_OUTPUT: Maximum tool output size in tokens (default: 50000)

A ``.env`` file in the working directory is loaded before reading the
environment. Missing client credentials do not stop the server from
starting; they are reported when authorization is first needed.
"""

import os
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from spotify_mcp.errors import ConfigurationError

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8000/callback"
DEFAULT_OAUTH_PORT = 8000
DEFAULT_CALLBACK_PATH = "/callback"
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1"})

SETUP_INSTRUCTIONS = """To use this Spotify MCP server, you need to configure the required environment variables:

1. Go to the Spotify Developer Dashboard: https://developer.spotify.com/dashboard/applications
2. Create a new application (or use an existing one)
3. Set the Redirect URI to: http://127.0.0.1:8000/callback
4. Note your Client ID and Client Secret

Then set these environment variables:
- SPOTIFY_CLIENT_ID=your-client-id
- SPOTIFY_CLIENT_SECRET=your-client-secret
- SPOTIFY_REDIRECT_URI=http://127.0.0.1:8000/callback"""


class SpotifySettings(BaseModel):
    """Validated configuration inputs.

    Attributes:
        client_id: Spotify application client ID.
        client_secret: Spotify application client secret.
        redirect_uri: Loopback URI Spotify redirects to after consent.
        access_token: Pre-provisioned access token, if any.
        refresh_token: Pre-provisioned refresh token, if any.
        max_tool_token_output: Upper bound on tool output size, in tokens.
    """

    model_config = {"frozen": True}

    client_id: str | None = Field(default=None, description="Spotify client ID")
    client_secret: str | None = Field(default=None, description="Spotify client secret")
    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI, description="Spotify redirect URI")
    access_token: str | None = Field(default=None, description="Spotify API token")
    refresh_token: str | None = Field(default=None, description="Spotify refresh token")
    max_tool_token_output: int = Field(default=50000, gt=0, description="Maximum tool token output")

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "SpotifySettings":
        """Build settings from the process environment.

        Args:
            load_env_file: Load ./.env into the environment first.

        Returns:
            Settings populated from environment variables.
        """
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict[str, str] = {}
        for field_name, env_name in (
            ("client_id", "SPOTIFY_CLIENT_ID"),
            ("client_secret", "SPOTIFY_CLIENT_SECRET"),
            ("redirect_uri", "SPOTIFY_REDIRECT_URI"),
            ("access_token", "SPOTIFY_API_TOKEN"),
            ("refresh_token", "SPOTIFY_REFRESH_TOKEN"),
            ("max_tool_token_output", "MAX_TOOL_TOKEN_OUTPUT"),
        ):
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value
        return cls.model_validate(values)

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def require_client_credentials(self) -> tuple[str, str]:
        """Return (client_id, client_secret) or explain how to configure them.

        Raises:
            ConfigurationError: If either value is missing.
        """
        if not self.client_id or not self.client_secret:
            missing = [
                name
                for name, value in (
                    ("SPOTIFY_CLIENT_ID", self.client_id),
                    ("SPOTIFY_CLIENT_SECRET", self.client_secret),
                )
                if not value
            ]
            raise ConfigurationError(
                f"Spotify Authorization Required! Missing: {', '.join(missing)}\n\n"
                f"{SETUP_INSTRUCTIONS}\n\n"
                "Once configured, call get_initial_context again to start the "
                "authorization flow."
            )
        return self.client_id, self.client_secret

    def validate_redirect_uri(self) -> tuple[str, int, str]:
        """Parse the redirect URI and check it points at this machine.

        The authorization code is handed to whoever listens on the redirect
        port, so only loopback hosts are accepted.

        Returns:
            Tuple of (host, port, callback path).

        Raises:
            ConfigurationError: If the URI is malformed or not a loopback http URI.
        """
        try:
            parsed = urlparse(self.redirect_uri)
            port = parsed.port or DEFAULT_OAUTH_PORT
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid SPOTIFY_REDIRECT_URI '{self.redirect_uri}': {e}"
            ) from e

        host = parsed.hostname
        if parsed.scheme != "http" or not host:
            raise ConfigurationError(
                f"Invalid SPOTIFY_REDIRECT_URI '{self.redirect_uri}'. "
                f"Use a loopback http URI, for example {DEFAULT_REDIRECT_URI}"
            )
        if host not in LOOPBACK_HOSTS:
            raise ConfigurationError(
                "Redirect URI must use localhost or 127.0.0.1 for automatic token "
                f"exchange (got '{host}'). Update SPOTIFY_REDIRECT_URI, for example "
                f"{DEFAULT_REDIRECT_URI}, and register it in the Spotify dashboard."
            )
        return host, port, parsed.path or DEFAULT_CALLBACK_PATH

    def describe(self) -> dict[str, bool | str]:
        """Summarize configuration without exposing secrets."""
        return {
            "hasClientId": bool(self.client_id),
            "hasClientSecret": bool(self.client_secret),
            "hasAccessToken": bool(self.access_token),
            "hasRefreshToken": bool(self.refresh_token),
            "redirectUri": self.redirect_uri,
        }
