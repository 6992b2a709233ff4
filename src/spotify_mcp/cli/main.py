"""Command-line interface for spotify-mcp."""

import asyncio
import sys

import click

from spotify_mcp.__version__ import __version__


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Spotify MCP Server - Connect AI agents to the Spotify Web API.

    Tools cover:
    - Search and browse (catalog search, new releases, featured playlists)
    - Personalization (top artists and tracks)
    - Playlists (list, create, update, add/remove/reorder tracks)
    """
    pass


@main.command()
@click.option("--client-id", envvar="SPOTIFY_CLIENT_ID", help="Spotify client ID")
@click.option("--client-secret", envvar="SPOTIFY_CLIENT_SECRET", help="Spotify client secret")
@click.option(
    "--redirect-uri",
    envvar="SPOTIFY_REDIRECT_URI",
    default="http://127.0.0.1:8000/callback",
    show_default=True,
    help="Loopback redirect URI registered for the Spotify app",
)
@click.option("--no-browser", is_flag=True, help="Print the authorization URL instead of opening it")
def setup(
    client_id: str | None, client_secret: str | None, redirect_uri: str, no_browser: bool
) -> None:
    """Authorize Spotify access and print tokens for your .env file.

    This will:
    1. Start a local callback listener on the redirect URI
    2. Open the browser for Spotify consent
    3. Exchange the returned code for access and refresh tokens

    Requires:
    - SPOTIFY_CLIENT_ID environment variable or --client-id option
    - SPOTIFY_CLIENT_SECRET environment variable or --client-secret option
    """
    from spotify_mcp.auth import CredentialStore, OAuthManager
    from spotify_mcp.config import SpotifySettings
    from spotify_mcp.errors import SpotifyMCPError

    if not client_id or not client_secret:
        click.echo("❌ Error: Spotify client credentials required")
        click.echo("")
        click.echo("Set environment variables:")
        click.echo("  export SPOTIFY_CLIENT_ID='your-client-id'")
        click.echo("  export SPOTIFY_CLIENT_SECRET='your-client-secret'")
        click.echo("")
        click.echo("Or pass as options:")
        click.echo("  spotify-mcp setup --client-id=... --client-secret=...")
        sys.exit(1)

    settings = SpotifySettings(
        client_id=client_id, client_secret=client_secret, redirect_uri=redirect_uri
    )
    manager = OAuthManager(settings, CredentialStore())

    try:
        flow = manager.start_authorization(open_browser=not no_browser)
        click.echo("Starting Spotify OAuth authentication flow...")
        click.echo(f"Callback listener running at: {redirect_uri}")
        click.echo("If the browser doesn't open, visit:")
        click.echo(f"  {flow.authorization_url}")
        click.echo("")
        click.echo("Waiting for authorization (Press Ctrl+C to cancel)...")
        token = asyncio.run(manager.authenticate(open_browser=False))
    except KeyboardInterrupt:
        manager.close()
        click.echo("\nAuthorization cancelled.")
        sys.exit(1)
    except SpotifyMCPError as e:
        manager.close()
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)

    manager.close()
    click.echo("✓ Authentication successful!")
    click.echo("")
    click.echo("Add these to your .env file:")
    click.echo(f"SPOTIFY_API_TOKEN={token.access_token}")
    click.echo(f"SPOTIFY_REFRESH_TOKEN={token.refresh_token}")
    if token.expires_at:
        click.echo("")
        click.echo(f"Access token expires: {token.expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")


@main.command()
def mcp() -> None:
    """Start the MCP server for Claude Desktop integration.

    Authorization is not required up front: the agent's first call to
    get_initial_context starts the browser flow when no tokens are configured.

    This command is typically invoked by Claude Desktop via the MCP protocol.
    """
    from spotify_mcp.server import main as server_main

    try:
        click.echo("Starting Spotify MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
def doctor() -> None:
    """Check configuration status.

    Verifies:
    1. Spotify client credentials configured
    2. Redirect URI is a valid loopback URI
    3. Pre-provisioned tokens present (optional)
    """
    from spotify_mcp.config import SpotifySettings
    from spotify_mcp.errors import ConfigurationError

    settings = SpotifySettings.from_env()
    info = settings.describe()
    ok = True

    click.echo("Spotify MCP Status:")
    click.echo("")
    click.echo("Configuration:")
    for label, key in (("Client ID", "hasClientId"), ("Client Secret", "hasClientSecret")):
        if info[key]:
            click.echo(f"  ✓ {label} configured")
        else:
            click.echo(f"  ❌ {label} missing")
            ok = False

    try:
        settings.validate_redirect_uri()
        click.echo(f"  ✓ Redirect URI: {settings.redirect_uri}")
    except ConfigurationError as e:
        click.echo(f"  ❌ {e}")
        ok = False

    click.echo("")
    click.echo("Tokens:")
    if info["hasAccessToken"] or info["hasRefreshToken"]:
        click.echo(f"  Access token: {'present' if info['hasAccessToken'] else 'missing'}")
        click.echo(f"  Refresh token: {'present' if info['hasRefreshToken'] else 'missing'}")
    else:
        click.echo("  None configured; authorization will run on first use.")

    click.echo("")
    if ok:
        click.echo("✓ Ready to use!")
    else:
        click.echo("❌ Setup required. See https://developer.spotify.com/dashboard/applications")
        sys.exit(1)


if __name__ == "__main__":
    main()
