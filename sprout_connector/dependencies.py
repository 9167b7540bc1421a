from __future__ import annotations

from functools import lru_cache

from sprout_connector.config import AppSettings, load_settings
from sprout_connector.services.sproutvideo_client import (
    CachingFetcher,
    SproutVideoClient,
    UrllibFetcher,
)
from sprout_connector.services.video_service import VideoService
from sprout_connector.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_video_service() -> VideoService:
    settings = get_settings()
    assert settings.api_key is not None
    client = SproutVideoClient(
        api_key=settings.api_key,
        base_url=settings.api_base_url,
        fetcher=CachingFetcher(UrllibFetcher(timeout_seconds=settings.http_timeout_seconds)),
    )
    return VideoService(
        client=client,
        tags_cache_ttl_seconds=settings.tags_cache_ttl_seconds,
        account_cache_ttl_seconds=settings.account_cache_ttl_seconds,
        page_size=settings.sync_page_size,
        telemetry=get_telemetry(),
    )


def reset_cached_dependencies() -> None:
    get_video_service.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
