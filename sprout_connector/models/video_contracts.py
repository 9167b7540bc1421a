from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

VIDEO_IDENTITY_COLUMN = "videoId"
VIDEO_DISPLAY_COLUMN = "title"
VIDEO_FEATURED_COLUMNS: tuple[str, ...] = ("thumbnail", "duration", "createdAt")


class Tag(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str


def _empty_asset_urls() -> dict[str, str | None]:
    return {}


class VideoAssets(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    videos: dict[str, str | None] = Field(default_factory=_empty_asset_urls)
    thumbnails: tuple[str, ...] = ()
    poster_frames: tuple[str, ...] = ()

    @field_validator("videos", mode="before")
    @classmethod
    def _default_videos(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("thumbnails", "poster_frames", mode="before")
    @classmethod
    def _default_frames(cls, value: object) -> object:
        return () if value is None else value


class RawVideo(BaseModel):
    """A video record as returned by the SproutVideo API."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    title: str | None = None
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    width: int = 0
    height: int = 0
    duration: float = 0.0
    plays: int | None = None
    password: str | None = None
    privacy: int
    tags: tuple[str, ...] = ()
    selected_poster_frame_number: int = 0
    source_video_file_size: int = 0
    folder_id: str | None = None
    assets: VideoAssets = Field(default_factory=VideoAssets)

    @field_validator("tags", mode="before")
    @classmethod
    def _default_tags(cls, value: object) -> object:
        return () if value is None else value

    @field_validator(
        "width",
        "height",
        "selected_poster_frame_number",
        "source_video_file_size",
        mode="before",
    )
    @classmethod
    def _default_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value: object) -> object:
        return 0.0 if value is None else value


class EnrichedVideo(BaseModel):
    """One row of the Videos sync table."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    video_id: str = Field(json_schema_extra={"hint": "identity"})
    title: str | None = None
    created_at: str | None = Field(default=None, json_schema_extra={"hint": "date-time"})
    updated_at: str | None = Field(default=None, json_schema_extra={"hint": "date-time"})
    height: int
    width: int
    description: str | None = None
    plays: int | None = None
    source_size_mb: int = Field(alias="sourceSizeMB")
    tags: tuple[str, ...]
    duration: str = Field(json_schema_extra={"hint": "duration"})
    password: str | None = None
    privacy: str
    poster_frame: str | None = Field(default=None, json_schema_extra={"hint": "image"})
    thumbnail: str | None = Field(default=None, json_schema_extra={"hint": "image"})
    best_resolution: str | None = None
    aspect_ratio: str
    folder: str | None = None
    link: str = Field(json_schema_extra={"hint": "url"})


class SyncContinuation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    next_page_endpoint: str


class SyncPage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    records: tuple[EnrichedVideo, ...]
    continuation: SyncContinuation | None = None


class SyncRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    continuation: SyncContinuation | None = None
    start_from: int | None = Field(default=None, ge=0)


class AddTagRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tag: str = Field(max_length=255)


class ConnectionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str


class VideoTableSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = "Videos"
    identity_name: str = "Video"
    id_column: str = VIDEO_IDENTITY_COLUMN
    display_column: str = VIDEO_DISPLAY_COLUMN
    featured_columns: tuple[str, ...] = VIDEO_FEATURED_COLUMNS
    row_schema: dict[str, Any]


def build_video_table_schema() -> VideoTableSchema:
    return VideoTableSchema(row_schema=EnrichedVideo.model_json_schema(by_alias=True))
