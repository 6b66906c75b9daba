"""Tests for TUI key handling, chart sizing, and view model helpers."""

from __future__ import annotations

from types import MappingProxyType

from irrigation_dashboard.chart import MIN_HEIGHT, MIN_WIDTH, ChartSurface
from irrigation_dashboard.config import DashboardConfig
from irrigation_dashboard.models import DeviceConfig, HistorySnapshot
from irrigation_dashboard.session import DashboardSession
from irrigation_dashboard.telemetry import PayloadRejectedEvent, PollErrorEvent
from irrigation_dashboard.ui import runtime
from irrigation_dashboard.ui.renderer import render_layout
from irrigation_dashboard.ui.telemetry_sink import UiTelemetrySink
from irrigation_dashboard.ui.view_model import build_ui_snapshot, config_rows, window_label

CONSOLE_WIDTH = 120
CONSOLE_HEIGHT = 40
EXPECTED_CHART_WIDTH = 80
EXPECTED_CHART_HEIGHT = 34


def test_parse_keys_maps_letters_and_arrows() -> None:
    """Metric, window, refresh, and quit keys become tokens."""
    tokens = runtime._parse_keys(b"stcwrq\x1b[C\x1b[Dx")  # type: ignore[attr-defined]
    assert tokens == ["SOIL", "TEMP", "CPU", "WINDOW", "REFRESH", "QUIT", "NEXT", "PREV"]


def test_parse_keys_accepts_upper_case() -> None:
    """Caps lock does not disable the shortcuts."""
    assert runtime._parse_keys(b"SQ") == ["SOIL", "QUIT"]  # type: ignore[attr-defined]


def test_process_key_selects_metric() -> None:
    """Metric keys change the charted metric."""
    session = DashboardSession()
    message, refresh, quit_ = runtime._process_key("TEMP", session)  # type: ignore[attr-defined]
    assert session.window.metric == "temp"
    assert message == "Showing temp"
    assert (refresh, quit_) == (False, False)


def test_process_key_arrows_cycle_metrics() -> None:
    """Arrow keys step through the metrics and wrap."""
    session = DashboardSession()
    runtime._process_key("PREV", session)  # type: ignore[attr-defined]
    assert session.window.metric == "cpu"
    runtime._process_key("NEXT", session)  # type: ignore[attr-defined]
    assert session.window.metric == "soil"


def test_process_key_cycles_window_and_requests_refresh() -> None:
    """The window key advances the span; refresh and quit are reported."""
    session = DashboardSession(DashboardConfig(window_choices=(0, 300)))
    message, _, _ = runtime._process_key("WINDOW", session)  # type: ignore[attr-defined]
    assert session.window.span_seconds == 300
    assert message == "Window: 5m"
    assert runtime._process_key("REFRESH", session)[1] is True  # type: ignore[attr-defined]
    assert runtime._process_key("QUIT", session)[2] is True  # type: ignore[attr-defined]


def test_compute_chart_size_fills_chart_panel() -> None:
    """The surface tracks the console size minus the surrounding layout."""
    assert runtime.compute_chart_size(CONSOLE_WIDTH, CONSOLE_HEIGHT) == (
        EXPECTED_CHART_WIDTH,
        EXPECTED_CHART_HEIGHT,
    )


def test_compute_chart_size_clamps_tiny_consoles() -> None:
    """Very small terminals still get a drawable surface."""
    assert runtime.compute_chart_size(10, 5) == (MIN_WIDTH, MIN_HEIGHT)


def test_window_label() -> None:
    """Window spans are shown compactly."""
    assert [window_label(s) for s in (0, 45, 60, 900, 3600)] == ["all", "45s", "1m", "15m", "1h"]


def test_config_rows_include_firmware_extras() -> None:
    """Optional firmware settings appear after the core fields."""
    config = DeviceConfig(
        dry_on=2600,
        wet_off=2000,
        mode="AUTO",
        log_period_ms=5000,
        extras=MappingProxyType({"pump_pwm": 200}),
    )
    rows = dict(config_rows(config))
    assert rows["Log period"] == "5s"
    assert rows["Pump pwm"] == "200"


def test_ui_snapshot_lists_newest_errors_first() -> None:
    """The side panel shows the most recent poll errors first."""
    sink = UiTelemetrySink()
    for attempt in (1, 2):
        sink.record_event(
            PollErrorEvent(
                task="history",
                attempt=attempt,
                error_type="TransportError",
                message=f"e{attempt}",
            )
        )
    snapshot = build_ui_snapshot(
        DashboardSession().snapshot(), header_text="Controller", telemetry=sink.snapshot()
    )
    assert [row.text for row in snapshot.errors] == ["TransportError: e2", "TransportError: e1"]


def test_ui_snapshot_summarises_rejected_payloads() -> None:
    """Rejected payloads are counted and the latest reason is kept."""
    sink = UiTelemetrySink()
    sink.record_event(PayloadRejectedEvent(endpoint="history", message="bad idx"))
    sink.record_event(PayloadRejectedEvent(endpoint="config", message="failed validation"))
    snapshot = build_ui_snapshot(
        DashboardSession().snapshot(), header_text="Controller", telemetry=sink.snapshot()
    )
    assert snapshot.rejected_payloads == 2
    assert snapshot.last_rejection == "config: failed validation"


def test_ui_snapshot_without_rejections() -> None:
    """No rejection summary is shown until a payload is rejected."""
    snapshot = build_ui_snapshot(
        DashboardSession().snapshot(),
        header_text="Controller",
        telemetry=UiTelemetrySink().snapshot(),
    )
    assert snapshot.rejected_payloads == 0
    assert snapshot.last_rejection is None


def test_render_layout_draws_chart_on_surface() -> None:
    """Rendering the layout redraws the chart from the session snapshot."""
    session = DashboardSession()
    session.apply_history(
        HistorySnapshot(series=MappingProxyType({"soil": (1.0, 2.0, 3.0)}), sequence=1)
    )
    surface = ChartSurface()
    snapshot = build_ui_snapshot(session.snapshot(), header_text="Controller")
    layout = render_layout(snapshot, surface=surface)
    assert layout["chart"] is not None
    assert surface.last_render is not None
    assert surface.last_render.points == 3
