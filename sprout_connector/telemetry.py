from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Literal, Protocol

import structlog

TELEMETRY_LOGGER_NAME = "sprout_connector.telemetry"

# Attribute names containing any of these are never written out. Video passwords and
# request payloads can reach telemetry through service attributes.
REDACTED_KEY_FRAGMENTS = ("api_key", "authorization", "body", "password", "secret", "token")
REDACTED = "[redacted]"
MAX_VALUE_LENGTH = 160

Scalar = bool | int | float | str | None


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        pass


class StructuredLogTelemetrySink:
    """Writes each event as a structlog record on the telemetry logger."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger(TELEMETRY_LOGGER_NAME)

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **attributes)


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if self.enabled:
            self.sink.emit(event_name=event_name, attributes=_scrub(attributes))

    @contextmanager
    def timed(self, event_name: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        """
        Emit `event_name` once the block exits, with `duration_ms` and an
        `outcome` of `ok` or `error`. The yielded dict collects attributes
        only known inside the block, such as record counts.
        """
        collected: dict[str, Any] = {}
        started_at = perf_counter()
        outcome = "error"
        try:
            yield collected
            outcome = "ok"
        finally:
            self.emit(
                event_name,
                **{
                    **attributes,
                    **collected,
                    "outcome": outcome,
                    "duration_ms": int((perf_counter() - started_at) * 1000),
                },
            )


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if enabled and sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())
    if enabled and sink != "none":
        logging.getLogger(TELEMETRY_LOGGER_NAME).warning(
            "unknown telemetry sink; telemetry disabled sink=%s",
            sink,
        )
    return TelemetryClient.disabled()


def _scrub(attributes: Mapping[str, Any]) -> dict[str, Scalar]:
    scrubbed: dict[str, Scalar] = {}
    for raw_key, value in attributes.items():
        key = str(raw_key).strip().lower()
        if not key:
            continue
        redact = any(fragment in key for fragment in REDACTED_KEY_FRAGMENTS)
        scrubbed[key] = REDACTED if redact else _scrub_value(value)
    return scrubbed


def _scrub_value(value: Any) -> Scalar:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, list | tuple):
        # Tag ID lists and similar are flattened to one comma-separated value.
        return _truncate(",".join(str(item) for item in value))
    if isinstance(value, str):
        return _truncate(" ".join(value.split()))
    return type(value).__name__


def _truncate(text: str) -> str:
    if len(text) > MAX_VALUE_LENGTH:
        return f"{text[:MAX_VALUE_LENGTH]}..."
    return text
