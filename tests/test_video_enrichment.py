from __future__ import annotations

import pytest

from sprout_connector.models.video_contracts import Tag
from sprout_connector.services.errors import TagLookupError, VideoDataError
from sprout_connector.services.video_enrichment import (
    bytes_to_megabytes,
    calculate_aspect_ratio,
    enrich_video,
    find_best_resolution,
    format_duration,
    parse_tags,
    parse_video,
    privacy_label,
    resolve_tag_names,
)
from sproutvideo_fakes import make_raw_video

TAGS = (Tag(id="a", name="Foo"), Tag(id="b", name="Bar"))


@pytest.mark.parametrize(
    ("code", "label"),
    [
        (0, "Private"),
        (1, "Password Protected"),
        (2, "Public"),
        (3, "Login Protected"),
    ],
)
def test_privacy_label_maps_every_known_code(code: int, label: str) -> None:
    assert privacy_label(code) == label


@pytest.mark.parametrize("code", [-1, 4, 99])
def test_privacy_label_rejects_unknown_codes(code: int) -> None:
    with pytest.raises(VideoDataError, match="privacy code"):
        privacy_label(code)


def test_find_best_resolution_prefers_highest_available() -> None:
    assert find_best_resolution({"240p": "u1", "1080p": "u2"}) == "1080p"
    assert find_best_resolution({"source": "u", "8k": None}) == "source"
    assert find_best_resolution({"240p": None, "720p": None}) is None
    assert find_best_resolution({"480p": "", "360p": "u"}) == "360p"
    assert find_best_resolution({}) is None


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (1920, 1080, "16:9 (widescreen)"),
        (1, 1, "1:1 (square)"),
        (0, 500, ""),
        (500, 0, ""),
        (1000, 2000, "vertical"),
        (2390, 1000, "2.39:1 (Cinemascope)"),
        (2000, 1000, "2:1"),
        (1900, 1000, "1.9:1 (DCI)"),
        (1024, 768, "4:3 (traditional)"),
        (1500, 1000, "3:2 (wide)"),
        (800, 1000, "5:4 (social tall)"),
        (1080, 1920, "9:16 (vertical)"),
        (3000, 1000, "horizontal"),
        (1, 2, "vertical"),
    ],
)
def test_calculate_aspect_ratio(width: int, height: int, expected: str) -> None:
    assert calculate_aspect_ratio(width, height) == expected


def test_calculate_aspect_ratio_keeps_band_order_on_overlap() -> None:
    # 1.42 lies in both the 4:3 and 3:2 bands; 4:3 is listed first.
    assert calculate_aspect_ratio(142, 100) == "4:3 (traditional)"
    # Exact band edges are excluded from both neighbours.
    assert calculate_aspect_ratio(195, 100) == "horizontal"


def test_format_duration_rounds_to_whole_seconds() -> None:
    assert format_duration(73.4) == "73 secs"
    assert format_duration(73.6) == "74 secs"
    assert format_duration(2.5) == "3 secs"
    assert format_duration(0) == "0 secs"


def test_bytes_to_megabytes() -> None:
    assert bytes_to_megabytes(2_097_152) == 2
    assert bytes_to_megabytes(1_572_864) == 2
    assert bytes_to_megabytes(0) == 0


def test_resolve_tag_names_preserves_order() -> None:
    assert resolve_tag_names(["b", "a"], TAGS) == ("Bar", "Foo")
    assert resolve_tag_names([], TAGS) == ()


def test_resolve_tag_names_fails_on_unknown_id() -> None:
    with pytest.raises(TagLookupError) as exc_info:
        resolve_tag_names(["a", "missing"], TAGS)
    assert exc_info.value.tag_id == "missing"


def test_enrich_video_builds_display_row() -> None:
    raw = parse_video(make_raw_video(tags=["a", "b"]))

    enriched = enrich_video(raw, TAGS)

    assert enriched.video_id == "a098d2bbd33e1c328"
    assert enriched.privacy == "Public"
    assert enriched.thumbnail == "https://images.sproutvideo.com/thumbnails/frame_0000.jpg"
    assert enriched.poster_frame == "https://images.sproutvideo.com/poster_frames/frame_0001.jpg"
    assert enriched.best_resolution == "1080p"
    assert enriched.aspect_ratio == "16:9 (widescreen)"
    assert enriched.duration == "73 secs"
    assert enriched.tags == ("Foo", "Bar")
    assert enriched.source_size_mb == 2
    assert enriched.link == "https://sproutvideo.com/videos/a098d2bbd33e1c328"
    # The raw record is left untouched.
    assert raw.privacy == 2
    assert raw.tags == ("a", "b")


def test_enrich_video_serializes_with_table_column_names() -> None:
    enriched = enrich_video(parse_video(make_raw_video(folder_id="f1")), TAGS)

    row = enriched.model_dump(by_alias=True)

    assert row["videoId"] == "a098d2bbd33e1c328"
    assert row["sourceSizeMB"] == 2
    assert row["bestResolution"] == "1080p"
    assert row["posterFrame"].endswith("frame_0001.jpg")
    assert row["createdAt"] == "2010-08-26T21:35:41-04:00"
    assert row["folder"] == "f1"


def test_enrich_video_tolerates_missing_media() -> None:
    raw = parse_video(
        make_raw_video(
            selected_poster_frame_number=7,
            assets={"videos": {"240p": None}, "thumbnails": [], "poster_frames": []},
        )
    )

    enriched = enrich_video(raw, TAGS)

    assert enriched.thumbnail is None
    assert enriched.poster_frame is None
    assert enriched.best_resolution is None


def test_enrich_video_fails_on_unknown_privacy_code() -> None:
    raw = parse_video(make_raw_video(privacy=5))
    with pytest.raises(VideoDataError):
        enrich_video(raw, TAGS)


def test_parse_video_rejects_malformed_record() -> None:
    with pytest.raises(VideoDataError, match="malformed video"):
        parse_video({"title": "no id or privacy"})


def test_parse_tags_requires_tags_array() -> None:
    assert parse_tags({"tags": [{"id": "a", "name": "Foo", "created_at": "x"}]}) == (TAGS[0],)
    with pytest.raises(VideoDataError):
        parse_tags({"total": 0})
