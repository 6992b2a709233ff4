"""The initializer tool: authorizes Spotify access and opens the gate."""

import logging
from datetime import date

from pydantic import BaseModel

from spotify_mcp.auth import TokenSource
from spotify_mcp.errors import (
    INITIALIZER_TOOL,
    AuthenticationExpiredError,
    AuthorizationPendingError,
    SpotifyAPIError,
    SpotifyMCPError,
)
from spotify_mcp.server.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

MCP_INSTRUCTIONS = f"""You are a helpful assistant integrated with Spotify through the Model Context Protocol (MCP).

# Getting Started
- Always call {INITIALIZER_TOOL} first. Every other tool is rejected until it has succeeded.
- If it reports that authorization is required, give the user the URL, wait for them to
  finish in the browser, then call {INITIALIZER_TOOL} again.

# Working Principles
- Keep going until the user's request is fully resolved.
- Use the tools to look up tracks, artists, albums and playlists instead of guessing.
- Be mindful of Spotify rate limits: prefer specific queries and batch operations.
- Expired access tokens are refreshed automatically. If an error asks you to call
  {INITIALIZER_TOOL} again, do so.

# Searching
- Use field filters in queries (artist:, album:, track:, year:, genre:).
- Narrow searches to the item types you need.
- Try alternative spellings when a search returns nothing.

# Playlists
- Only the owner (or collaborators on a collaborative playlist) can modify a playlist.
- Track URIs look like "spotify:track:4iV5W9uYEdYUVa79Axb7Rh"; add at most 100 per call.
- Pass snapshot_id when removing or reordering tracks to avoid racing other edits.

# Presenting Results
- Include track name, artists, album and duration (M:SS).
- Mention popularity, release dates and genres when they help the user decide.
- Use pagination (limit/offset) for large collections."""


class GetInitialContextParams(BaseModel):
    """The initializer takes no arguments."""


async def get_initial_context(ctx: ToolContext, params: GetInitialContextParams) -> str:
    """Authorize if needed, verify the connection, and open the gate.

    Raises:
        ConfigurationError: If client credentials or the redirect URI are invalid.
        AuthorizationError: If the last authorization attempt failed.
        AuthorizationPendingError: If the user still has to grant access.
    """
    ctx.settings.require_client_credentials()

    failed = ctx.manager.take_failed_flow()
    if failed is not None:
        error = failed.result.exception()
        assert error is not None  # nosec B101 - take_failed_flow only returns failed flows
        raise error

    if not ctx.store.is_usable():
        flow = ctx.manager.start_authorization(open_browser=ctx.open_browser)
        raise AuthorizationPendingError(flow.authorization_url)

    try:
        me = await ctx.client.get_current_user()
    except AuthenticationExpiredError:
        logger.warning("Stored Spotify credentials were rejected; starting authorization")
        ctx.store.clear()
        flow = ctx.manager.start_authorization(open_browser=ctx.open_browser)
        raise AuthorizationPendingError(flow.authorization_url) from None
    except SpotifyAPIError as e:
        raise SpotifyMCPError(
            f"Failed to connect to Spotify API ({e.message}). "
            f"Please try running {INITIALIZER_TOOL} again."
        ) from e

    try:
        seeds = await ctx.client.get("/recommendations/available-genre-seeds")
        genres = ", ".join(seeds.get("genres", [])[:10]) or "none returned"
    except SpotifyAPIError as e:
        logger.warning("Could not fetch genre seeds: %s", e)
        genres = "not available"

    ctx.gate.open()
    return _render_context(ctx, me, genres)


def _render_context(ctx: ToolContext, me: dict, genres: str) -> str:
    config = ctx.settings.describe()
    source = ctx.store.source

    def state(flag: bool | str) -> str:
        return "Configured" if flag else "Missing"

    stored = ctx.store.get()
    return f"""{MCP_INSTRUCTIONS}

This is the initial context for your Spotify integration:

<context>
  Current Spotify Configuration:
  - Client ID: {state(config["hasClientId"])}
  - Client Secret: {state(config["hasClientSecret"])}
  - Access Token: {state(bool(stored and stored.access_token))}
  - Refresh Token: {state(bool(stored and stored.refresh_token))}
  - Redirect URI: {config["redirectUri"]}
  - Token Source: {"OAuth Flow" if source is TokenSource.OAUTH_FLOW else "Environment Variables"}

  Current Spotify User:
  - Display Name: {me.get("display_name") or "Not available"}
  - User ID: {me.get("id")}
  - Country: {me.get("country") or "Not specified"}
  - Subscription: {me.get("product") or "Not specified"}
  - Followers: {(me.get("followers") or {}).get("total", 0)}

  Available Genre Seeds (sample): {genres}
</context>

<todaysDate>{date.today().isoformat()}</todaysDate>"""


def register_context_tools(registry: ToolRegistry) -> None:
    registry.add(
        INITIALIZER_TOOL,
        "Initialize the Spotify connection. Must be called before any other tool. "
        "Starts browser authorization when needed, verifies access, and returns usage "
        "instructions plus the current user's context.",
        GetInitialContextParams,
        get_initial_context,
    )
