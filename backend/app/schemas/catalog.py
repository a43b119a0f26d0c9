"""Music catalog request and response schemas.

Request models reject unknown fields. Response models read straight from
ORM rows (from_attributes) and serialize camelCase.
"""

from datetime import datetime

from pydantic import ConfigDict, Field

from app.core.responses import CamelModel


class _Request(CamelModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# =============================================================================
# Categories
# =============================================================================


class CreateCategoryRequest(_Request):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=5, max_length=300)


class UpdateCategoryRequest(_Request):
    """Only the description of a category can change."""

    description: str = Field(min_length=5, max_length=300)


class CategoryDTO(CamelModel):
    id: int
    name: str
    description: str
    created_at: datetime


# =============================================================================
# Playlists
# =============================================================================


class CreatePlaylistRequest(_Request):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=5, max_length=500)


class UpdatePlaylistRequest(_Request):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=5, max_length=500)


class PlaylistDTO(CamelModel):
    id: int
    name: str
    description: str
    created_at: datetime
    category_id: int


# =============================================================================
# Songs
# =============================================================================


class CreateSongRequest(_Request):
    title: str = Field(min_length=1, max_length=200)
    artist: str = Field(min_length=1, max_length=100)
    duration: int = Field(gt=0, description="Length in seconds")


class UpdateSongRequest(_Request):
    """Full song update. ``orderId`` moves the song within its playlist."""

    title: str = Field(min_length=1, max_length=200)
    artist: str = Field(min_length=1, max_length=100)
    duration: int = Field(gt=0, description="Length in seconds")
    order_id: int | None = Field(
        default=None,
        description="New 1-based position; out-of-range values are clamped.",
    )


class SongDTO(CamelModel):
    id: int
    title: str
    artist: str
    duration: int
    order_id: int
    created_at: datetime
    playlist_id: int
