"""Playlist tools."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from spotify_mcp.server import responses
from spotify_mcp.server.registry import ToolContext, ToolRegistry

TRACK_URI_PREFIX = "spotify:track:"


def _validate_track_uris(uris: list[str]) -> list[str]:
    invalid = [uri for uri in uris if not uri.startswith(TRACK_URI_PREFIX)]
    if invalid:
        raise ValueError(
            f'Invalid track URIs detected. All URIs must start with "{TRACK_URI_PREFIX}". '
            f"Invalid URIs: {', '.join(invalid)}"
        )
    return uris


class PlaylistParams(BaseModel):
    model_config = {"populate_by_name": True}


class UserPlaylistsParams(PlaylistParams):
    limit: int = Field(default=20, ge=1, le=50, description="Number of playlists to return (1-50)")
    offset: int = Field(default=0, ge=0, description="Index of the first playlist to return")
    user_id: str | None = Field(
        default=None,
        alias="userId",
        description="User ID to get playlists for. If not provided, gets current user's playlists",
    )


class CreatePlaylistParams(PlaylistParams):
    name: str = Field(..., min_length=1, max_length=100, description="Name of the playlist")
    description: str | None = Field(
        default=None, max_length=300, description="Description of the playlist"
    )
    public: bool = Field(default=True, description="Whether the playlist should be public")
    collaborative: bool = Field(
        default=False, description="Whether the playlist should be collaborative"
    )
    user_id: str | None = Field(
        default=None,
        alias="userId",
        description="User ID to create playlist for. If not provided, creates for current user",
    )


class UpdatePlaylistDetailsParams(PlaylistParams):
    playlist_id: str = Field(..., alias="playlistId", description="ID of the playlist to update")
    name: str | None = Field(default=None, min_length=1, max_length=100, description="New name")
    description: str | None = Field(default=None, max_length=300, description="New description")
    public: bool | None = Field(default=None, description="Whether the playlist should be public")
    collaborative: bool | None = Field(
        default=None, description="Whether the playlist should be collaborative"
    )


class AddTracksParams(PlaylistParams):
    playlist_id: str = Field(..., alias="playlistId", description="ID of the playlist")
    uris: list[str] = Field(
        ...,
        min_length=1,
        max_length=100,
        description='Spotify track URIs to add (max 100), e.g. "spotify:track:4iV5W9uYEdYUVa79Axb7Rh"',
    )
    position: int | None = Field(
        default=None, ge=0, description="Position to insert tracks at; appends when omitted"
    )

    @field_validator("uris")
    @classmethod
    def check_uris(cls, uris: list[str]) -> list[str]:
        return _validate_track_uris(uris)


class TrackToRemove(BaseModel):
    uri: str = Field(..., description="Spotify URI of the track to remove")
    positions: list[int] | None = Field(
        default=None,
        description="Positions to remove the track from; all instances are removed when omitted",
    )


class RemoveTracksParams(PlaylistParams):
    playlist_id: str = Field(..., alias="playlistId", description="ID of the playlist")
    tracks: list[TrackToRemove] = Field(
        ..., min_length=1, max_length=100, description="Tracks to remove"
    )
    snapshot_id: str | None = Field(
        default=None, description="Playlist snapshot ID to ensure the playlist hasn't changed"
    )

    @field_validator("tracks")
    @classmethod
    def check_uris(cls, tracks: list[TrackToRemove]) -> list[TrackToRemove]:
        _validate_track_uris([t.uri for t in tracks])
        for t in tracks:
            if t.positions and any(p < 0 for p in t.positions):
                raise ValueError(f"Positions must be non-negative for {t.uri}")
        return tracks


class ReorderTracksParams(PlaylistParams):
    playlist_id: str = Field(..., alias="playlistId", description="ID of the playlist")
    range_start: int = Field(..., ge=0, description="Position of the first track to move")
    range_length: int = Field(default=1, ge=1, description="Number of tracks to move")
    insert_before: int = Field(..., ge=0, description="Position to insert the tracks before")
    snapshot_id: str | None = Field(
        default=None, description="Playlist snapshot ID to ensure the playlist hasn't changed"
    )


async def _get_modifiable_playlist(ctx: ToolContext, playlist_id: str) -> dict[str, Any]:
    """Fetch a playlist and check the current user may modify it.

    Raises:
        ValueError: If the user is neither the owner nor a collaborator.
    """
    current = await ctx.client.get(f"/playlists/{playlist_id}")
    me = await ctx.client.get_current_user()
    is_owner = (current.get("owner") or {}).get("id") == me.get("id")
    if not is_owner and not current.get("collaborative"):
        raise ValueError(
            "You do not have permission to modify this playlist. You must be the owner "
            "or the playlist must be collaborative."
        )
    return current


async def get_user_playlists(ctx: ToolContext, params: UserPlaylistsParams) -> dict[str, Any]:
    path = f"/users/{params.user_id}/playlists" if params.user_id else "/me/playlists"
    page = await ctx.client.get(path, params={"limit": params.limit, "offset": params.offset})
    playlists = [responses.playlist(item) for item in page.get("items", []) if item]
    return responses.success(
        f"Retrieved {len(playlists)} playlists",
        playlists=playlists,
        pagination=responses.pagination(page),
    )


async def create_playlist(ctx: ToolContext, params: CreatePlaylistParams) -> dict[str, Any]:
    user_id = params.user_id
    if not user_id:
        user_id = (await ctx.client.get_current_user())["id"]

    body: dict[str, Any] = {
        "name": params.name,
        "public": params.public,
        "collaborative": params.collaborative,
    }
    if params.description is not None:
        body["description"] = params.description

    created = await ctx.client.post(f"/users/{user_id}/playlists", json_data=body)
    playlist = responses.playlist(created)
    playlist["followers"] = (created.get("followers") or {}).get("total", 0)
    return responses.success(
        f'Playlist "{params.name}" created successfully', playlist=playlist, success=True
    )


async def update_playlist_details(
    ctx: ToolContext, params: UpdatePlaylistDetailsParams
) -> dict[str, Any]:
    changes = params.model_dump(
        include={"name", "description", "public", "collaborative"}, exclude_none=True
    )
    if not changes:
        raise ValueError(
            "At least one field (name, description, public, or collaborative) must be "
            "provided for update"
        )

    await ctx.client.put(f"/playlists/{params.playlist_id}", json_data=changes)
    updated = await ctx.client.get(f"/playlists/{params.playlist_id}")

    summary = []
    if "name" in changes:
        summary.append(f'name to "{changes["name"]}"')
    if "description" in changes:
        summary.append(f'description to "{changes["description"]}"')
    if "public" in changes:
        summary.append(f"visibility to {'public' if changes['public'] else 'private'}")
    if "collaborative" in changes:
        summary.append(
            f"collaboration to {'enabled' if changes['collaborative'] else 'disabled'}"
        )

    return responses.success(
        f"Playlist updated successfully. Changed: {', '.join(summary)}",
        playlist=responses.playlist(updated),
        changes=changes,
        success=True,
    )


async def add_tracks_to_playlist(ctx: ToolContext, params: AddTracksParams) -> dict[str, Any]:
    current = await _get_modifiable_playlist(ctx, params.playlist_id)

    body: dict[str, Any] = {"uris": params.uris}
    if params.position is not None:
        body["position"] = params.position
    response = await ctx.client.post(f"/playlists/{params.playlist_id}/tracks", json_data=body)
    updated = await ctx.client.get(f"/playlists/{params.playlist_id}")

    count = len(params.uris)
    return responses.success(
        f'Successfully added {count} track{"s" if count > 1 else ""} to playlist '
        f'"{current.get("name")}"',
        snapshot_id=response.get("snapshot_id"),
        playlist=responses.playlist_summary(updated),
        added_tracks={"count": count, "uris": params.uris, "position": params.position},
        success=True,
    )


async def remove_tracks_from_playlist(
    ctx: ToolContext, params: RemoveTracksParams
) -> dict[str, Any]:
    current = await _get_modifiable_playlist(ctx, params.playlist_id)

    tracks = [
        {"uri": t.uri, **({"positions": t.positions} if t.positions else {})}
        for t in params.tracks
    ]
    body: dict[str, Any] = {"tracks": tracks}
    if params.snapshot_id:
        body["snapshot_id"] = params.snapshot_id
    response = await ctx.client.delete(f"/playlists/{params.playlist_id}/tracks", json_data=body)
    updated = await ctx.client.get(f"/playlists/{params.playlist_id}")

    # Without explicit positions, count each URI once
    removed = sum(len(t.positions) if t.positions else 1 for t in params.tracks)
    return responses.success(
        f'Successfully removed {removed} track instance{"s" if removed > 1 else ""} from '
        f'playlist "{current.get("name")}"',
        snapshot_id=response.get("snapshot_id"),
        playlist=responses.playlist_summary(updated),
        removed_tracks={"count": removed, "tracks": tracks},
        success=True,
    )


async def reorder_playlist_tracks(
    ctx: ToolContext, params: ReorderTracksParams
) -> dict[str, Any]:
    current = await _get_modifiable_playlist(ctx, params.playlist_id)

    total = (current.get("tracks") or {}).get("total", 0)
    start, length, insert_before = params.range_start, params.range_length, params.insert_before
    if start >= total:
        raise ValueError(
            f"range_start ({start}) cannot be greater than or equal to the total number "
            f"of tracks ({total})"
        )
    if start + length > total:
        raise ValueError(
            f"range_start + range_length ({start + length}) cannot exceed the total number "
            f"of tracks ({total})"
        )
    if insert_before > total:
        raise ValueError(
            f"insert_before ({insert_before}) cannot be greater than the total number of "
            f"tracks ({total})"
        )

    details = {"range_start": start, "range_length": length, "insert_before": insert_before}

    # Inserting inside or directly after the moved range leaves the order unchanged
    if start <= insert_before <= start + length:
        return responses.success(
            "No reordering needed - tracks are already in the target position",
            playlist=responses.playlist_summary(current),
            reorder_details={**details, "no_change": True},
            success=True,
        )

    body: dict[str, Any] = dict(details)
    if params.snapshot_id:
        body["snapshot_id"] = params.snapshot_id
    response = await ctx.client.put(f"/playlists/{params.playlist_id}/tracks", json_data=body)
    updated = await ctx.client.get(f"/playlists/{params.playlist_id}")

    return responses.success(
        f'Successfully reordered {length} track{"s" if length > 1 else ""} in playlist '
        f'"{current.get("name")}"',
        snapshot_id=response.get("snapshot_id"),
        playlist=responses.playlist_summary(updated),
        reorder_details={**details, "tracks_moved": length},
        success=True,
    )


def register_playlist_tools(registry: ToolRegistry) -> None:
    registry.add(
        "get_user_playlists",
        "Retrieve playlists for the current user or a specific user. Supports pagination. "
        "Returns playlist metadata including name, description, track count, and privacy settings.",
        UserPlaylistsParams,
        get_user_playlists,
    )
    registry.add(
        "create_playlist",
        "Create a new playlist with name, description, privacy (public/private), and "
        "collaborative options. Returns the created playlist including its URI and ID.",
        CreatePlaylistParams,
        create_playlist,
    )
    registry.add(
        "update_playlist_details",
        "Update playlist name, description, privacy, or collaborative status. Only the fields "
        "you specify are changed. Requires playlist ownership or collaborative permissions.",
        UpdatePlaylistDetailsParams,
        update_playlist_details,
    )
    registry.add(
        "add_tracks_to_playlist",
        "Add up to 100 tracks to a playlist, optionally at a specific position. Validates "
        "permissions and track URIs before adding.",
        AddTracksParams,
        add_tracks_to_playlist,
    )
    registry.add(
        "remove_tracks_from_playlist",
        "Remove tracks from a playlist, either all instances or specific positions. Accepts a "
        "snapshot ID for concurrency safety. Validates permissions before removal.",
        RemoveTracksParams,
        remove_tracks_from_playlist,
    )
    registry.add(
        "reorder_playlist_tracks",
        "Move a range of tracks within a playlist to a new position. Validates the range and "
        "skips moves that would not change the order.",
        ReorderTracksParams,
        reorder_playlist_tracks,
    )
