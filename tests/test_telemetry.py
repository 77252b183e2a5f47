from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from vwvideos.app.telemetry import TelemetryClient, build_telemetry_client, sanitize_attributes


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def test_telemetry_client_redacts_sensitive_fields() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit(
        "video.analyze.finish",
        video_id="vid-1",
        transcript="bleed the rear brakes first",
        openai_api_key="sk-test",
        partial_ip_address="10.0.0.0",
        categories={"Brakes"},
        attempts=2,
    )

    assert len(sink.events) == 1
    event_name, attributes = sink.events[0]
    assert event_name == "video.analyze.finish"
    assert attributes["video_id"] == "vid-1"
    assert attributes["attempts"] == 2
    assert attributes["transcript"] == "[redacted]"
    assert attributes["openai_api_key"] == "[redacted]"
    assert attributes["partial_ip_address"] == "[redacted]"
    assert attributes["categories"] == "set"


def test_sanitize_attributes_compacts_long_strings() -> None:
    sanitized = sanitize_attributes({" Title ": "a  b\n" + "x" * 200, "": "dropped"})

    assert list(sanitized) == ["title"]
    title = sanitized["title"]
    assert isinstance(title, str)
    assert title.startswith("a b x")
    assert title.endswith("...")
    assert len(title) == 163


def test_disabled_telemetry_client_does_not_emit() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=False, sink=sink)

    client.emit("video.import.start", video_id="vid-1")
    assert sink.events == []


def test_build_telemetry_client_none_sink_is_disabled() -> None:
    assert build_telemetry_client(enabled=True, sink="none").enabled is False
    assert build_telemetry_client(enabled=False, sink="log").enabled is False
    assert build_telemetry_client(enabled=True, sink="log").enabled is True
