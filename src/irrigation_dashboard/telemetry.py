"""Telemetry hook interfaces for poll metrics and error events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TelemetrySignal:
    """Base class for telemetry signals."""

    emitted_at: datetime = field(init=False)

    def __post_init__(self) -> None:
        """Stamp the signal with the UTC time it was emitted."""
        object.__setattr__(self, "emitted_at", datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class TelemetryEvent(TelemetrySignal):
    """Represents a discrete telemetry event."""


@dataclass(frozen=True, slots=True)
class TelemetryMetric(TelemetrySignal):
    """Represents a telemetry metric sample."""


@dataclass(frozen=True, slots=True)
class PollMetrics(TelemetryMetric):
    """Metric payload emitted after completing a poll cycle."""

    task: str
    outcome: str  # "applied" | "skipped" | "stale"
    duration_ms: float
    poll_started_at: datetime | None = None
    poll_completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class PollErrorEvent(TelemetryEvent):
    """Event emitted when a poll cycle fails and is skipped."""

    task: str
    attempt: int
    error_type: str
    message: str | None = None


@dataclass(frozen=True, slots=True)
class PayloadRejectedEvent(TelemetryEvent):
    """Event emitted when a controller payload is malformed and ignored."""

    endpoint: str
    message: str


class TelemetrySink(Protocol):
    """Protocol for emitting structured telemetry signals."""

    def record_event(self, event: TelemetryEvent) -> None:  # pragma: no cover - protocol
        """Record a structured event for diagnostics."""
        ...

    def record_metric(self, metric: TelemetryMetric) -> None:  # pragma: no cover - protocol
        """Record a metric sample."""
        ...


class NullTelemetrySink(TelemetrySink):
    """Telemetry sink that drops all signals."""

    def record_event(self, event: TelemetryEvent) -> None:
        """Drop the event without side effects."""

    def record_metric(self, metric: TelemetryMetric) -> None:
        """Drop the metric without side effects."""
