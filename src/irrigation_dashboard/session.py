"""Explicit dashboard session holding the state shared by pollers and the renderer.

Every attribute is replaced wholesale with an immutable value; nothing is
mutated in place. Readers take a :class:`SessionSnapshot` and work from it, so
a render can never observe a half-applied history update.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from .chart import ChartSurface, render_window
from .config import DashboardConfig
from .models import DeviceConfig, DeviceStatus, HistorySnapshot, RenderWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Immutable view of the session at one instant."""

    status: DeviceStatus | None
    config: DeviceConfig | None
    history: HistorySnapshot
    window: RenderWindow
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def log_period_ms(self) -> float | None:
        """Return the controller logging period, once the configuration is known."""
        return None if self.config is None else self.config.log_period_ms


class DashboardSession:
    """Single-writer store for status, configuration, history, and the render window."""

    def __init__(self, config: DashboardConfig | None = None) -> None:
        """Initialise an empty session using presentation defaults from *config*."""
        self._config = config or DashboardConfig()
        self._status: DeviceStatus | None = None
        self._device_config: DeviceConfig | None = None
        self._history = HistorySnapshot()
        self._history_floor = 0
        self._window = RenderWindow(
            metric=self._config.default_metric,
            span_seconds=self._config.default_window_seconds,
        )

    @property
    def window(self) -> RenderWindow:
        """Return the active render window."""
        return self._window

    @property
    def history(self) -> HistorySnapshot:
        """Return the most recently applied history snapshot."""
        return self._history

    def apply_status(self, status: DeviceStatus) -> None:
        """Replace the live status readings."""
        self._status = status

    def apply_config(self, config: DeviceConfig) -> None:
        """Replace the controller configuration (and with it the logging period)."""
        previous = self._device_config
        if previous is None or previous.log_period_ms != config.log_period_ms:
            logger.info("Controller log period is %.0f ms", config.log_period_ms)
        self._device_config = config

    def apply_history(self, history: HistorySnapshot) -> bool:
        """Swap in *history* unless an equal or newer snapshot was already applied.

        Returns False when *history* was discarded as stale.
        """
        if history.sequence <= self._history_floor:
            logger.debug(
                "Discarding stale history seq=%d (floor=%d)", history.sequence, self._history_floor
            )
            return False
        self._history_floor = history.sequence
        self._history = history
        return True

    def invalidate_history(self, through_sequence: int) -> None:
        """Reject any history produced by requests up to *through_sequence*.

        Used after a device restart so responses issued before it are never applied.
        """
        self._history_floor = max(self._history_floor, through_sequence)

    def select_metric(self, metric: str) -> None:
        """Chart *metric* from now on."""
        self._window = replace(self._window, metric=metric)

    def set_window(self, span_seconds: int) -> None:
        """Show the trailing *span_seconds* (0 for everything)."""
        if span_seconds < 0:
            raise ValueError("span_seconds must be zero or positive")
        self._window = replace(self._window, span_seconds=int(span_seconds))

    def cycle_window(self, choices: Sequence[int] | None = None) -> int:
        """Advance to the next window in *choices* and return it."""
        options = tuple(choices or self._config.window_choices)
        try:
            position = options.index(self._window.span_seconds)
        except ValueError:
            position = -1
        span = options[(position + 1) % len(options)]
        self.set_window(span)
        return span

    def snapshot(self) -> SessionSnapshot:
        """Return an immutable snapshot of the current state."""
        return SessionSnapshot(
            status=self._status,
            config=self._device_config,
            history=self._history,
            window=self._window,
        )


def render_snapshot(surface: ChartSurface, snapshot: SessionSnapshot) -> None:
    """Sample the selected metric of *snapshot* to its window and draw it on *surface*."""
    window = snapshot.window
    render_window(
        surface,
        snapshot.history.get(window.metric),
        window,
        snapshot.log_period_ms,
    )
