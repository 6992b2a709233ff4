"""Catalog search and browse tools."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from spotify_mcp.server import responses
from spotify_mcp.server.registry import ToolContext, ToolRegistry

SearchType = Literal["album", "artist", "playlist", "track", "show", "episode"]


class SearchParams(BaseModel):
    q: str = Field(
        ...,
        min_length=1,
        description="Search query string. You can use field filters like artist:, album:, "
        "track:, year:, genre:, etc.",
    )
    type: list[SearchType] = Field(
        ..., min_length=1, description="Array of item types to search for"
    )
    market: str | None = Field(
        default=None,
        min_length=2,
        max_length=2,
        description='ISO 3166-1 alpha-2 country code to filter results (e.g., "US", "GB")',
    )
    limit: int = Field(default=20, ge=1, le=50, description="Number of results per type (1-50)")
    offset: int = Field(default=0, ge=0, description="Index of the first result to return")
    include_external: Literal["audio"] | None = Field(
        default=None, description="Include externally hosted audio content"
    )


class NewReleasesParams(BaseModel):
    limit: int = Field(default=20, ge=1, le=50, description="Number of albums to return (1-50)")
    offset: int = Field(default=0, ge=0, description="Index of the first album to return")
    country: str | None = Field(
        default=None,
        min_length=2,
        max_length=2,
        description='ISO 3166-1 alpha-2 country code to filter releases (e.g., "US", "GB")',
    )


class FeaturedPlaylistsParams(BaseModel):
    limit: int = Field(default=20, ge=1, le=50, description="Number of playlists to return (1-50)")
    offset: int = Field(default=0, ge=0, description="Index of the first playlist to return")
    country: str | None = Field(
        default=None,
        min_length=2,
        max_length=2,
        description="ISO 3166-1 alpha-2 country code to filter playlists",
    )
    locale: str | None = Field(
        default=None, description='Locale for playlist descriptions (e.g., "en_US", "sv_SE")'
    )
    timestamp: str | None = Field(
        default=None,
        description='ISO 8601 timestamp to get playlists at a specific time (e.g., "2014-10-23T09:00:00")',
    )


def _show(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "description": item.get("description"),
        "explicit": item.get("explicit"),
        "external_urls": item.get("external_urls"),
        "images": item.get("images", []),
        "languages": item.get("languages", []),
        "media_type": item.get("media_type"),
        "publisher": item.get("publisher"),
        "total_episodes": item.get("total_episodes"),
        "uri": item.get("uri"),
    }


def _episode(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "description": item.get("description"),
        "duration_ms": item.get("duration_ms"),
        "explicit": item.get("explicit"),
        "external_urls": item.get("external_urls"),
        "images": item.get("images", []),
        "language": item.get("language"),
        "languages": item.get("languages", []),
        "release_date": item.get("release_date"),
        "release_date_precision": item.get("release_date_precision"),
        "uri": item.get("uri"),
    }


# Search response key and item formatter for each search type
_SEARCH_SECTIONS = {
    "track": ("tracks", responses.track),
    "artist": ("artists", responses.full_artist),
    "album": ("albums", responses.album),
    "playlist": ("playlists", responses.playlist),
    "show": ("shows", _show),
    "episode": ("episodes", _episode),
}


async def search(ctx: ToolContext, params: SearchParams) -> dict[str, Any]:
    response = await ctx.client.get(
        "/search",
        params={
            "q": params.q,
            "type": ",".join(params.type),
            "market": params.market,
            "limit": params.limit,
            "offset": params.offset,
            "include_external": params.include_external,
        },
    )

    results: dict[str, Any] = {}
    for search_type in params.type:
        key, formatter = _SEARCH_SECTIONS[search_type]
        page = response.get(key)
        if not page:
            continue
        results[key] = {
            # Spotify returns null entries for unavailable items
            "items": [formatter(item) for item in page.get("items", []) if item],
            "pagination": responses.pagination(page),
        }

    total = sum(len(section["items"]) for section in results.values())
    return responses.success(
        f"Found {total} results across {len(results)} categories",
        query=params.q,
        types=params.type,
        results=results,
    )


async def get_new_releases(ctx: ToolContext, params: NewReleasesParams) -> dict[str, Any]:
    response = await ctx.client.get(
        "/browse/new-releases",
        params={"limit": params.limit, "offset": params.offset, "country": params.country},
    )
    page = response.get("albums", {})
    albums = [responses.album(item) for item in page.get("items", []) if item]
    return responses.success(
        f"Retrieved {len(albums)} new releases",
        albums=albums,
        pagination=responses.pagination(page),
    )


async def get_featured_playlists(
    ctx: ToolContext, params: FeaturedPlaylistsParams
) -> dict[str, Any]:
    response = await ctx.client.get(
        "/browse/featured-playlists",
        params={
            "limit": params.limit,
            "offset": params.offset,
            "country": params.country,
            "locale": params.locale,
            "timestamp": params.timestamp,
        },
    )
    page = response.get("playlists", {})
    playlists = [responses.playlist(item) for item in page.get("items", []) if item]
    return responses.success(
        f"Retrieved {len(playlists)} featured playlists",
        featured_message=response.get("message"),
        playlists=playlists,
        pagination=responses.pagination(page),
    )


def register_browse_tools(registry: ToolRegistry) -> None:
    registry.add(
        "get_new_releases",
        "Get new album releases available on Spotify. Returns paginated list of recently "
        "released albums with artist information, release dates, and metadata. Supports "
        "country filtering for regional releases.",
        NewReleasesParams,
        get_new_releases,
    )
    registry.add(
        "get_featured_playlists",
        "Get featured playlists from Spotify's editorial team. Returns curated playlists with "
        "descriptions and metadata. Supports country and locale filtering.",
        FeaturedPlaylistsParams,
        get_featured_playlists,
    )
    registry.add(
        "search",
        "Search Spotify's catalog for albums, artists, tracks, playlists, shows, and episodes. "
        "Supports field filters and pagination. Returns trimmed metadata for each result type.",
        SearchParams,
        search,
    )
