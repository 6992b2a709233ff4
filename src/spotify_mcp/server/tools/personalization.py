"""Listening-history tools."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from spotify_mcp.server import responses
from spotify_mcp.server.registry import ToolContext, ToolRegistry


class TopItemsParams(BaseModel):
    type: Literal["artists", "tracks"] = Field(
        ..., description='The type of entity to return: "artists" or "tracks"'
    )
    time_range: Literal["long_term", "medium_term", "short_term"] = Field(
        default="medium_term",
        description='Time frame for affinity: "long_term" (~1 year), "medium_term" '
        '(~6 months), "short_term" (~4 weeks)',
    )
    limit: int = Field(default=20, ge=1, le=50, description="Number of items to return (1-50)")
    offset: int = Field(default=0, ge=0, description="Index of the first item to return")


async def get_user_top_items(ctx: ToolContext, params: TopItemsParams) -> dict[str, Any]:
    page = await ctx.client.get(
        f"/me/top/{params.type}",
        params={"time_range": params.time_range, "limit": params.limit, "offset": params.offset},
    )

    if params.type == "artists":
        items = [
            {**responses.full_artist(item), "type": item.get("type")}
            for item in page.get("items", []) if item
        ]
    else:
        items = [
            {**responses.track(item, album_artists=True), "type": item.get("type")}
            for item in page.get("items", []) if item
        ]

    return responses.success(
        f"Retrieved {len(items)} top {params.type} for time range: {params.time_range}",
        **{params.type: items},
        pagination=responses.pagination(page),
        time_range=params.time_range,
        type=params.type,
    )


def register_personalization_tools(registry: ToolRegistry) -> None:
    registry.add(
        "get_user_top_items",
        "Get the current user's top artists or tracks based on calculated affinity. Supports "
        "time ranges (short_term ~4 weeks, medium_term ~6 months, long_term ~1 year) and "
        "pagination.",
        TopItemsParams,
        get_user_top_items,
    )
