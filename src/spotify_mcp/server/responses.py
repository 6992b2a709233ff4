"""Tool result payloads and the shapes of trimmed Spotify objects."""

import json
from typing import Any

# Rough characters-per-token ratio used to bound tool output
CHARS_PER_TOKEN = 4


def success(message: str, **data: Any) -> dict[str, Any]:
    """Build a tool result with a one-line summary followed by data."""
    return {"message": message, **data}


def render(result: dict[str, Any] | str, max_tokens: int) -> str:
    """Serialize a tool result, truncating output that exceeds ``max_tokens``."""
    text = result if isinstance(result, str) else json.dumps(result, indent=2)
    limit = max_tokens * CHARS_PER_TOKEN
    if len(text) <= limit:
        return text
    return (
        text[:limit]
        + f"\n\n[Output truncated: exceeded {max_tokens} tokens. "
        "Use a smaller limit or pagination to see more.]"
    )


def pagination(page: dict[str, Any]) -> dict[str, Any]:
    return {
        "total": page.get("total"),
        "limit": page.get("limit"),
        "offset": page.get("offset"),
        "next": page.get("next"),
        "previous": page.get("previous"),
    }


def artist_ref(artist: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": artist.get("id"),
        "name": artist.get("name"),
        "external_urls": artist.get("external_urls"),
    }


def full_artist(artist: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": artist.get("id"),
        "name": artist.get("name"),
        "genres": artist.get("genres", []),
        "popularity": artist.get("popularity"),
        "external_urls": artist.get("external_urls"),
        "images": artist.get("images", []),
        "followers": artist.get("followers"),
        "uri": artist.get("uri"),
    }


def track(item: dict[str, Any], album_artists: bool = False) -> dict[str, Any]:
    album = item.get("album") or {}
    album_data: dict[str, Any] = {
        "id": album.get("id"),
        "name": album.get("name"),
        "images": album.get("images", []),
    }
    if album_artists:
        album_data["artists"] = [artist_ref(a) for a in album.get("artists", [])]
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "artists": [artist_ref(a) for a in item.get("artists", [])],
        "album": album_data,
        "duration_ms": item.get("duration_ms"),
        "duration": format_duration(item.get("duration_ms")),
        "explicit": item.get("explicit"),
        "external_urls": item.get("external_urls"),
        "popularity": item.get("popularity"),
        "preview_url": item.get("preview_url"),
        "uri": item.get("uri"),
    }


def album(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "album_type": item.get("album_type"),
        "artists": [artist_ref(a) for a in item.get("artists", [])],
        "external_urls": item.get("external_urls"),
        "images": item.get("images", []),
        "release_date": item.get("release_date"),
        "release_date_precision": item.get("release_date_precision"),
        "total_tracks": item.get("total_tracks"),
        "uri": item.get("uri"),
    }


def playlist(item: dict[str, Any]) -> dict[str, Any]:
    owner = item.get("owner") or {}
    tracks = item.get("tracks") or {}
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "description": item.get("description"),
        "public": item.get("public"),
        "collaborative": item.get("collaborative"),
        "tracks": {"total": tracks.get("total"), "href": tracks.get("href")},
        "images": item.get("images") or [],
        "owner": {"id": owner.get("id"), "display_name": owner.get("display_name")},
        "external_urls": item.get("external_urls"),
        "snapshot_id": item.get("snapshot_id"),
        "uri": item.get("uri"),
    }


def playlist_summary(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "tracks_total": (item.get("tracks") or {}).get("total"),
    }


def format_duration(duration_ms: int | None) -> str | None:
    """Format milliseconds as M:SS."""
    if duration_ms is None:
        return None
    minutes, remainder = divmod(duration_ms // 1000, 60)
    return f"{minutes}:{remainder:02d}"
