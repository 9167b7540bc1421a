from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from sprout_connector.models.video_contracts import EnrichedVideo, RawVideo, Tag
from sprout_connector.services.errors import TagLookupError, VideoDataError

VIDEO_PERMALINK_BASE = "https://sproutvideo.com/videos/"

PRIVACY_STATES: tuple[str, ...] = (
    "Private",
    "Password Protected",
    "Public",
    "Login Protected",
)

# Lowest to highest quality.
RESOLUTION_ORDER: tuple[str, ...] = (
    "240p",
    "360p",
    "480p",
    "720p",
    "1080p",
    "2k",
    "4k",
    "8k",
    "source",
)

# Open (low, high) intervals on width / height, first match wins.
ASPECT_RATIO_BANDS: tuple[tuple[float, float, str], ...] = (
    (2.3, 2.5, "2.39:1 (Cinemascope)"),
    (1.95, 2.05, "2:1"),
    (1.878, 1.95, "1.9:1 (DCI)"),
    (1.678, 1.878, "16:9 (widescreen)"),
    (1.233, 1.433, "4:3 (traditional)"),
    (1.4, 1.6, "3:2 (wide)"),
    (0.75, 0.85, "5:4 (social tall)"),
    (0.5125, 0.6125, "9:16 (vertical)"),
)
SQUARE_LABEL = "1:1 (square)"

_BYTES_PER_MEGABYTE = 1024 * 1024


def parse_video(payload: Any) -> RawVideo:
    try:
        return RawVideo.model_validate(payload)
    except ValidationError as exc:
        raise VideoDataError(f"SproutVideo returned a malformed video record: {exc}") from exc


def parse_tag(payload: Any) -> Tag:
    try:
        return Tag.model_validate(payload)
    except ValidationError as exc:
        raise VideoDataError(f"SproutVideo returned a malformed tag record: {exc}") from exc


def parse_tags(payload: Any) -> tuple[Tag, ...]:
    raw_tags = payload.get("tags") if isinstance(payload, Mapping) else None
    if not isinstance(raw_tags, list):
        raise VideoDataError("SproutVideo tag listing is missing its tags array.")
    return tuple(parse_tag(item) for item in raw_tags)


def privacy_label(code: int) -> str:
    if 0 <= code < len(PRIVACY_STATES):
        return PRIVACY_STATES[code]
    raise VideoDataError(f"Unknown SproutVideo privacy code: {code}")


def find_best_resolution(videos: Mapping[str, str | None]) -> str | None:
    best: str | None = None
    for label in RESOLUTION_ORDER:
        if videos.get(label):
            best = label
    return best


def calculate_aspect_ratio(width: int, height: int) -> str:
    if width == 0 or height == 0:
        return ""
    ratio = width / height
    if ratio == 1:
        return SQUARE_LABEL
    for low, high, label in ASPECT_RATIO_BANDS:
        if low < ratio < high:
            return label
    if width > height:
        return "horizontal"
    return "vertical"


def resolve_tag_names(tag_ids: Sequence[str], tags: Sequence[Tag]) -> tuple[str, ...]:
    names_by_id = {tag.id: tag.name for tag in tags}
    names: list[str] = []
    for tag_id in tag_ids:
        name = names_by_id.get(tag_id)
        if name is None:
            raise TagLookupError(tag_id)
        names.append(name)
    return tuple(names)


def format_duration(seconds: float) -> str:
    return f"{_round_half_up(seconds)} secs"


def bytes_to_megabytes(size_bytes: int) -> int:
    return _round_half_up(size_bytes / _BYTES_PER_MEGABYTE)


def enrich_video(video: RawVideo, tags: Sequence[Tag]) -> EnrichedVideo:
    """
    Build the display-ready row for one video.

    Missing media (no thumbnails, an out-of-range poster frame, no playable
    resolution) leaves the matching column empty. An unknown privacy code or
    a tag id absent from `tags` fails the whole record.
    """
    assets = video.assets
    poster_index = video.selected_poster_frame_number
    poster_frame = (
        assets.poster_frames[poster_index]
        if 0 <= poster_index < len(assets.poster_frames)
        else None
    )
    return EnrichedVideo(
        video_id=video.id,
        title=video.title,
        created_at=video.created_at,
        updated_at=video.updated_at,
        height=video.height,
        width=video.width,
        description=video.description,
        plays=video.plays,
        source_size_mb=bytes_to_megabytes(video.source_video_file_size),
        tags=resolve_tag_names(video.tags, tags),
        duration=format_duration(video.duration),
        password=video.password,
        privacy=privacy_label(video.privacy),
        poster_frame=poster_frame,
        thumbnail=assets.thumbnails[0] if assets.thumbnails else None,
        best_resolution=find_best_resolution(assets.videos),
        aspect_ratio=calculate_aspect_ratio(video.width, video.height),
        folder=video.folder_id,
        link=f"{VIDEO_PERMALINK_BASE}{video.id}",
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
