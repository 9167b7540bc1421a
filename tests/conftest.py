from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sprout_connector.dependencies import get_video_service, reset_cached_dependencies
from sprout_connector.main import create_app
from sprout_connector.services.sproutvideo_client import SproutVideoClient
from sprout_connector.services.video_service import VideoService
from sproutvideo_fakes import FakeSproutVideoApi, make_raw_video


@pytest.fixture(autouse=True)
def _connector_env_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.setenv("SPROUT_CONNECTOR_DATA_DIR", str(tmp_path / "runtime-data"))
    monkeypatch.setenv("SPROUT_CONNECTOR_API_KEY", "test-api-key")
    monkeypatch.setenv("SPROUT_CONNECTOR_TELEMETRY_SINK", "none")
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()


@pytest.fixture
def sprout_api() -> FakeSproutVideoApi:
    return FakeSproutVideoApi(
        videos=[
            make_raw_video("v0", title="Launch teaser", tags=["t1"]),
            make_raw_video("v1", title="Behind the scenes", width=1080, height=1920),
            make_raw_video("v2", title="Interview", privacy=0),
        ],
        tags=[{"id": "t1", "name": "Marketing"}],
    )


@pytest.fixture
def client(sprout_api: FakeSproutVideoApi) -> Iterator[TestClient]:
    service = VideoService(
        client=SproutVideoClient(api_key="test-api-key", fetcher=sprout_api),
        page_size=2,
    )
    app = create_app()
    app.dependency_overrides[get_video_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
