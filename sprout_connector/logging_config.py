from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog
from structlog.typing import EventDict, Processor

from sprout_connector.config import AppSettings
from sprout_connector.telemetry import TELEMETRY_LOGGER_NAME

ROOT_LOGGER_NAME = "sprout_connector"
LOG_FILE_NAME = "sprout-connector.log"

# Context keys bound by the HTTP middleware and the routes, renamed for the log records.
CONTEXT_KEY_RENAMES: dict[str, str] = {
    "http_request_id": "request_id",
    "http_method": "method",
    "http_path": "path",
}


class _SkipTelemetry(logging.Filter):
    """Keeps telemetry events on the JSON file only."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(TELEMETRY_LOGGER_NAME)


def configure_application_logging(settings: AppSettings) -> Path:
    """
    Route every `sprout_connector.*` logger (telemetry included) into one JSON
    lines file, and everything except telemetry to stdout at the configured level.
    """
    log_dir = settings.resolved_log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    telemetry_logger = logging.getLogger(TELEMETRY_LOGGER_NAME)
    telemetry_logger.setLevel(logging.INFO)
    telemetry_logger.propagate = True

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        _formatter(
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        )
    )

    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setLevel(_level(settings.log_level))
    console_handler.addFilter(_SkipTelemetry())
    console_handler.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=_is_tty(sys.stdout)))
    )

    root.addHandler(console_handler)
    root.addHandler(file_handler)
    root.info("logging configured level=%s path=%s", settings.log_level.upper(), log_file)
    return log_file


def _formatter(*renderers: Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _connector_context,
            *renderers,
        ],
    )


def _connector_context(
    _logger: logging.Logger | None,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    for bound_key, log_key in CONTEXT_KEY_RENAMES.items():
        if bound_key in event_dict:
            event_dict[log_key] = event_dict.pop(bound_key)
    logger_name = str(event_dict.get("logger", ""))
    is_telemetry = "telemetry_event" in event_dict or logger_name.startswith(
        TELEMETRY_LOGGER_NAME
    )
    event_dict["channel"] = "telemetry" if is_telemetry else "app"
    return event_dict


def _level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _is_tty(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty()) if callable(isatty) else False
    except (OSError, ValueError):
        return False
