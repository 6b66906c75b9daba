"""Tests for the dashboard session and its atomic state swaps."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from irrigation_dashboard.chart import ChartSurface
from irrigation_dashboard.config import DashboardConfig
from irrigation_dashboard.models import DeviceConfig, DeviceStatus, HistorySnapshot
from irrigation_dashboard.session import DashboardSession, render_snapshot


def _history(sequence: int, soil: tuple[float, ...] = (1.0, 2.0, 3.0)) -> HistorySnapshot:
    return HistorySnapshot(
        series=MappingProxyType({"soil": soil, "temp": (), "cpu": ()}),
        capacity=len(soil),
        sequence=sequence,
    )


def _config(log_period_ms: float = 5000.0) -> DeviceConfig:
    return DeviceConfig(dry_on=2600, wet_off=2000, mode="AUTO", log_period_ms=log_period_ms)


def test_newer_history_replaces_older() -> None:
    """Snapshots are applied in sequence order."""
    session = DashboardSession()
    assert session.apply_history(_history(1)) is True
    assert session.apply_history(_history(2, (4.0, 5.0))) is True
    assert session.history.get("soil") == (4.0, 5.0)


def test_stale_history_is_discarded() -> None:
    """A late response from an older request never replaces newer data."""
    session = DashboardSession()
    session.apply_history(_history(5, (9.0, 9.0)))
    assert session.apply_history(_history(3)) is False
    assert session.apply_history(_history(5)) is False
    assert session.history.get("soil") == (9.0, 9.0)


def test_invalidate_history_rejects_earlier_requests() -> None:
    """Requests issued before an invalidation are ignored when they complete."""
    session = DashboardSession()
    session.invalidate_history(7)
    assert session.apply_history(_history(7)) is False
    assert session.apply_history(_history(8)) is True


def test_snapshot_is_unaffected_by_later_updates() -> None:
    """A reader keeps a consistent view while the writer moves on."""
    session = DashboardSession()
    session.apply_history(_history(1))
    session.apply_config(_config())
    before = session.snapshot()

    session.apply_history(_history(2, (7.0, 8.0)))
    session.apply_config(_config(1000.0))
    session.select_metric("cpu")

    assert before.history.get("soil") == (1.0, 2.0, 3.0)
    assert before.log_period_ms == 5000.0
    assert before.window.metric == "soil"


def test_snapshot_without_config_has_no_log_period() -> None:
    """The log period is unknown until the configuration arrives."""
    session = DashboardSession()
    assert session.snapshot().log_period_ms is None
    assert session.snapshot().status is None


def test_status_is_replaced() -> None:
    """Status readings are swapped wholesale."""
    session = DashboardSession()
    status = DeviceStatus(
        soil=2300, temp_c=None, cpu_pct=12, pump_on=True, lockout=False, on_time=0, mode="ON"
    )
    session.apply_status(status)
    assert session.snapshot().status is status


def test_defaults_follow_dashboard_config() -> None:
    """The initial window comes from the presentation config."""
    session = DashboardSession(DashboardConfig(default_metric="temp", default_window_seconds=300))
    assert session.window.metric == "temp"
    assert session.window.span_seconds == 300


def test_cycle_window_wraps_through_choices() -> None:
    """The window key steps through every choice and wraps around."""
    session = DashboardSession(DashboardConfig(window_choices=(0, 60, 300)))
    assert session.cycle_window() == 60
    assert session.cycle_window() == 300
    assert session.cycle_window() == 0
    session.set_window(45)
    assert session.cycle_window() == 0


def test_set_window_rejects_negative_span() -> None:
    """Negative windows are invalid."""
    session = DashboardSession()
    with pytest.raises(ValueError):
        session.set_window(-1)


def test_render_snapshot_uses_selected_metric_and_window() -> None:
    """The chart follows the selected metric and sampled window."""
    session = DashboardSession()
    session.apply_config(_config(5000.0))
    session.apply_history(_history(1, tuple(float(i) for i in range(100))))
    session.set_window(60)
    surface = ChartSurface()

    render_snapshot(surface, session.snapshot())
    assert surface.last_render is not None
    assert surface.last_render.points == 12

    session.select_metric("temp")
    render_snapshot(surface, session.snapshot())
    assert surface.last_render is not None
    assert surface.last_render.mode == "placeholder"
