from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from sprout_connector.models.video_contracts import (
    EnrichedVideo,
    RawVideo,
    SyncContinuation,
    SyncPage,
    Tag,
)
from sprout_connector.services.errors import (
    InvalidInputError,
    SproutVideoApiError,
    VideoDataError,
    VideoNotFoundError,
)
from sprout_connector.services.sproutvideo_client import QueryParams, SproutVideoClient
from sprout_connector.services.video_enrichment import (
    enrich_video,
    parse_tag,
    parse_tags,
    parse_video,
)
from sprout_connector.telemetry import TelemetryClient

LOGGER = logging.getLogger("sprout_connector.videos")

VIDEOS_ENDPOINT = "videos"
TAGS_ENDPOINT = "tags"
ACCOUNT_ENDPOINT = "account"
LISTING_ORDER: dict[str, str] = {"order_by": "created_at", "order_dir": "desc"}


class VideoService:
    def __init__(
        self,
        *,
        client: SproutVideoClient,
        tags_cache_ttl_seconds: int = 3600,
        account_cache_ttl_seconds: int = 86_400,
        page_size: int = 25,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._client = client
        self._tags_cache_ttl_seconds = max(0, int(tags_cache_ttl_seconds))
        self._account_cache_ttl_seconds = max(0, int(account_cache_ttl_seconds))
        self._page_size = max(1, int(page_size))
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    async def sync_page(
        self,
        continuation: SyncContinuation | None = None,
        *,
        start_from: int | None = None,
    ) -> SyncPage:
        if start_from is not None and start_from < 0:
            raise InvalidInputError("start_from must not be negative.")

        params: dict[str, str] = dict(LISTING_ORDER)
        if continuation is not None:
            endpoint = continuation.next_page_endpoint
        else:
            endpoint = VIDEOS_ENDPOINT
            if start_from:
                params["per_page"] = str(self._page_size)
                params["page"] = str(start_from // self._page_size + 1)

        with self._telemetry.timed("sproutvideo.sync.page", endpoint=endpoint) as event:
            videos_response, tags_response = await asyncio.gather(
                self._call(endpoint, "GET", 0, params),
                self._call(TAGS_ENDPOINT, "GET", self._tags_cache_ttl_seconds),
            )
            tags = parse_tags(tags_response)
            raw_videos = _require_list(videos_response, "videos")
            records = tuple(enrich_video(parse_video(item), tags) for item in raw_videos)

            next_continuation: SyncContinuation | None = None
            next_page = videos_response.get("next_page")
            if isinstance(next_page, str) and next_page:
                next_continuation = SyncContinuation(
                    next_page_endpoint=self._client.strip_base_url(next_page)
                )
            event.update(records=len(records), has_more=next_continuation is not None)

        return SyncPage(records=records, continuation=next_continuation)

    async def add_tag(self, video_id: str, tag_name: str) -> EnrichedVideo:
        normalized_video_id = video_id.strip()
        normalized_tag_name = tag_name.strip()
        if not normalized_video_id:
            raise InvalidInputError("A video ID is required.")
        if not normalized_tag_name:
            raise InvalidInputError("A tag name is required.")

        with self._telemetry.timed("sproutvideo.tag.add", video_id=normalized_video_id) as event:
            video, tags_response = await asyncio.gather(
                self._fetch_video(normalized_video_id),
                self._call(TAGS_ENDPOINT, "GET", 0),
            )
            account_tags = parse_tags(tags_response)

            tag = _find_tag_by_name(account_tags, normalized_tag_name)
            event["tag_created"] = tag is None
            if tag is None:
                created_response = await self._call(
                    TAGS_ENDPOINT, "POST", 0, {"name": normalized_tag_name}
                )
                tag = parse_tag(created_response)
                LOGGER.info("created sproutvideo tag tag_id=%s", tag.id)
                account_tags = (*account_tags, tag)
            event["tag_id"] = tag.id

            event["updated"] = tag.id not in video.tags
            if not event["updated"]:
                return enrich_video(video, account_tags)

            updated_response = await self._call(
                f"{VIDEOS_ENDPOINT}/{normalized_video_id}",
                "PUT",
                0,
                {"tags": [*video.tags, tag.id]},
            )
            return enrich_video(parse_video(updated_response), account_tags)

    async def connection_name(self) -> str:
        account = await self._call(ACCOUNT_ENDPOINT, "GET", self._account_cache_ttl_seconds)
        if not isinstance(account, Mapping):
            raise VideoDataError("SproutVideo account response is not an object.")
        company = account.get("company")
        first_name = account.get("first_name")
        last_name = account.get("last_name")
        return f"{company} ({first_name} {last_name})"

    async def _fetch_video(self, video_id: str) -> RawVideo:
        try:
            payload = await self._call(f"{VIDEOS_ENDPOINT}/{video_id}", "GET", 0)
        except SproutVideoApiError as exc:
            if exc.status_code == 404:
                raise VideoNotFoundError(video_id) from exc
            raise
        if not payload:
            raise VideoNotFoundError(video_id)
        return parse_video(payload)

    async def _call(
        self,
        endpoint: str,
        method: str,
        cache_ttl_seconds: int = 3600,
        params: QueryParams | None = None,
    ) -> Any:
        return await asyncio.to_thread(
            self._client.call,
            endpoint,
            method,
            cache_ttl_seconds,
            params,
        )


def _find_tag_by_name(tags: tuple[Tag, ...], name: str) -> Tag | None:
    lowered = name.lower()
    for tag in tags:
        if tag.name.lower() == lowered:
            return tag
    return None


def _require_list(payload: Any, key: str) -> list[Any]:
    value = payload.get(key) if isinstance(payload, Mapping) else None
    if not isinstance(value, list):
        raise VideoDataError(f"SproutVideo listing is missing its {key} array.")
    return value
