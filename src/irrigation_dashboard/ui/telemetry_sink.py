"""UI telemetry sink buffering poll metrics and errors for the Rich dashboard.

This sink is injected into the DashboardClient to receive telemetry signals.
It stores a bounded history of recent events and the latest metric samples so the
UI runtime can render them without global state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock

from ..telemetry import (
    PayloadRejectedEvent,
    PollErrorEvent,
    PollMetrics,
    TelemetryEvent,
    TelemetryMetric,
    TelemetrySink,
)


@dataclass(frozen=True, slots=True)
class UiTelemetrySnapshot:
    """Immutable snapshot of recent telemetry for UI rendering."""

    generated_at: datetime
    last_poll_metrics: list[PollMetrics]
    recent_poll_errors: list[PollErrorEvent]
    recent_rejections: list[PayloadRejectedEvent]


class UiTelemetrySink(TelemetrySink):
    """Thread-safe telemetry sink retaining recent metrics and errors for the UI."""

    def __init__(self, *, history: int = 50) -> None:
        """Initialise the sink with bounded history capacity."""
        self._poll_metrics: deque[PollMetrics] = deque(maxlen=history)
        self._poll_errors: deque[PollErrorEvent] = deque(maxlen=history)
        self._rejections: deque[PayloadRejectedEvent] = deque(maxlen=history)
        self._lock = Lock()

    def record_event(self, event: TelemetryEvent) -> None:
        """Buffer a structured telemetry event for the recent errors pane."""
        with self._lock:
            if isinstance(event, PollErrorEvent):
                self._poll_errors.append(event)
            elif isinstance(event, PayloadRejectedEvent):
                self._rejections.append(event)

    def record_metric(self, metric: TelemetryMetric) -> None:
        """Buffer a metric sample for display in the footer."""
        with self._lock:
            if isinstance(metric, PollMetrics):
                self._poll_metrics.append(metric)

    def snapshot(self) -> UiTelemetrySnapshot:
        """Return an immutable snapshot of recent telemetry buffers."""
        with self._lock:
            return UiTelemetrySnapshot(
                generated_at=datetime.now(UTC),
                last_poll_metrics=list(self._poll_metrics),
                recent_poll_errors=list(self._poll_errors),
                recent_rejections=list(self._rejections),
            )
