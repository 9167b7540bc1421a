from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
from structlog.contextvars import bind_contextvars, reset_contextvars

from sprout_connector.config import load_settings
from sprout_connector.dependencies import get_video_service
from sprout_connector.logging_config import LOG_FILE_NAME, configure_application_logging
from sprout_connector.telemetry import TELEMETRY_LOGGER_NAME


def test_load_settings_reads_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "SPROUT_CONNECTOR_API_BASE_URL",
        " https://staging.api.sproutvideo.com/v1 ",
    )
    monkeypatch.setenv("SPROUT_CONNECTOR_SYNC_PAGE_SIZE", "50")
    monkeypatch.setenv("SPROUT_CONNECTOR_TELEMETRY_SINK", "LOG")

    settings = load_settings()

    assert settings.api_key == "test-api-key"
    assert settings.api_base_url == "https://staging.api.sproutvideo.com/v1/"
    assert settings.sync_page_size == 50
    assert settings.telemetry_sink == "log"
    assert settings.data_dir == (tmp_path / "runtime-data").resolve()
    assert settings.resolved_log_dir == settings.data_dir / "logs"


def test_load_settings_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_API_KEY", "   ")

    with pytest.raises(ValueError, match="SPROUT_CONNECTOR_API_KEY is required"):
        load_settings()

    assert load_settings(validate_api_key=False).api_key is None


@pytest.mark.parametrize(
    "base_url",
    [
        "https://collector.example.com/v1",
        "https://sproutvideo.com.example.net/v1",
        "https://notsproutvideo.com/v1",
    ],
)
def test_load_settings_rejects_hosts_outside_sproutvideo(
    base_url: str,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_API_BASE_URL", base_url)

    with pytest.raises(ValueError, match="must point at sproutvideo.com"):
        load_settings()
    with pytest.raises(ValueError, match="must point at sproutvideo.com"):
        load_settings(validate_api_key=False)


def test_load_settings_rejects_non_http_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_API_BASE_URL", "ftp://api.sproutvideo.com/v1")

    with pytest.raises(ValueError, match=r"must be an http\(s\) URL"):
        load_settings()


def test_load_settings_rejects_out_of_range_page_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_SYNC_PAGE_SIZE", "500")
    with pytest.raises(ValueError):
        load_settings()


def test_get_video_service_is_cached() -> None:
    assert get_video_service() is get_video_service()


def test_configure_application_logging_writes_log_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_LOG_DIR", str(tmp_path / "custom-logs"))

    log_file = configure_application_logging(load_settings())

    assert log_file == (tmp_path / "custom-logs" / LOG_FILE_NAME).resolve()
    assert log_file.exists()


def test_application_log_carries_connector_context_and_telemetry(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_LOG_DIR", str(tmp_path / "logs"))
    log_file = configure_application_logging(load_settings())

    tokens = bind_contextvars(http_request_id="req-7", video_id="v1")
    try:
        logging.getLogger("sprout_connector.videos").info("created sproutvideo tag tag_id=%s", "t9")
        structlog.get_logger(TELEMETRY_LOGGER_NAME).info(
            "telemetry",
            telemetry_event="sproutvideo.tag.add",
            tag_created=True,
        )
    finally:
        reset_contextvars(**tokens)
    for handler in logging.getLogger("sprout_connector").handlers:
        handler.flush()

    records = [
        json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines() if line
    ]
    app_record = next(r for r in records if r["event"] == "created sproutvideo tag tag_id=t9")
    assert app_record["channel"] == "app"
    assert app_record["request_id"] == "req-7"
    assert app_record["video_id"] == "v1"
    assert "http_request_id" not in app_record

    telemetry_record = next(r for r in records if r.get("telemetry_event") == "sproutvideo.tag.add")
    assert telemetry_record["channel"] == "telemetry"
    assert telemetry_record["request_id"] == "req-7"
    assert telemetry_record["tag_created"] is True
    assert not (log_file.parent / "sprout-connector-telemetry.log").exists()


def test_console_handler_skips_telemetry_records(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SPROUT_CONNECTOR_LOG_DIR", str(tmp_path / "logs"))
    configure_application_logging(load_settings())

    console = next(
        handler
        for handler in logging.getLogger("sprout_connector").handlers
        if not isinstance(handler, logging.FileHandler)
    )

    def _record(name: str) -> logging.LogRecord:
        return logging.LogRecord(name, logging.INFO, __file__, 1, "event", None, None)

    assert console.filter(_record("sprout_connector.videos"))
    assert not console.filter(_record(TELEMETRY_LOGGER_NAME))
