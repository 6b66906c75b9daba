"""Pure Rich renderer for the dashboard layout.

Converts a UiSnapshot into Rich renderables: a header with the selected metric
and window, the history chart, and a side panel with live readings,
configuration, and recent poll errors.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from rich.align import Align
from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..chart import ChartSurface, style_for_metric
from ..poller import PollerState
from ..session import render_snapshot
from .view_model import UiErrorRow, UiSnapshot, config_rows, status_rows, window_label

HEADER_HEIGHT = 3
FOOTER_HEIGHT = 1
SIDE_WIDTH = 36

_KEY_HINTS = "s/t/c: metric • w: window • r: refresh • q: quit • Ctrl-C: exit"


def render_layout(snapshot: UiSnapshot, *, surface: ChartSurface) -> Layout:
    """Return a Rich Layout for the given snapshot, drawing the chart on *surface*."""
    layout = Layout(name="root")
    layout.split_column(
        Layout(name="header", size=HEADER_HEIGHT),
        Layout(name="body", ratio=1),
        Layout(name="footer", size=FOOTER_HEIGHT),
    )
    layout["body"].split_row(Layout(name="chart", ratio=1), Layout(name="side", size=SIDE_WIDTH))
    layout["header"].update(_render_header(snapshot))
    layout["chart"].update(render_chart_panel(snapshot, surface=surface))
    layout["side"].update(_render_side(snapshot))
    layout["footer"].update(Align.left(Text(_KEY_HINTS, style="dim")))
    return layout


def render_chart_panel(snapshot: UiSnapshot, *, surface: ChartSurface) -> Panel:
    """Redraw *surface* from the session snapshot and wrap it in a panel."""
    render_snapshot(surface, snapshot.session)
    window = snapshot.session.window
    style = style_for_metric(window.metric)
    title = f"{style.label or window.metric} • {window_label(window.span_seconds)}"
    return Panel(surface.to_text(), title=title, border_style=style.color)


def _render_header(snapshot: UiSnapshot) -> Panel:
    title = Text(snapshot.header_text, style="bold")
    status = snapshot.session.status
    if status is None:
        pump = Text("Pump -", style="dim")
    else:
        state = ("ON", "bold green") if status.pump_on else ("OFF", "bold red")
        pump = Text.assemble("Pump ", state)
    inner = Table.grid(expand=True)
    inner.add_column(ratio=3)
    inner.add_column(ratio=2)
    inner.add_column(ratio=1, justify="right")
    inner.add_row(title, Text(snapshot.message or "", style="yellow"), pump)
    return Panel(inner, title="Irrigation Controller", border_style="cyan")


def _render_side(snapshot: UiSnapshot) -> Panel:
    parts = [
        _kv_table("Status", status_rows(snapshot.session.status)),
        _kv_table("Config", config_rows(snapshot.session.config)),
        _render_pollers(snapshot.pollers),
        _render_errors(snapshot.errors),
    ]
    if snapshot.last_rejection is not None:
        parts.append(
            Text(
                f"Rejected payloads: {snapshot.rejected_payloads} (last {snapshot.last_rejection})",
                style="yellow",
                overflow="ellipsis",
            )
        )
    return Panel(Group(*parts), title="Device", border_style="magenta")


def _kv_table(title: str, rows: Iterable[tuple[str, str]]) -> Table:
    grid = Table.grid(expand=True, padding=(0, 1))
    grid.title = title
    grid.title_style = "bold"
    grid.add_column(justify="right", style="cyan", no_wrap=True)
    grid.add_column(overflow="ellipsis")
    for label, value in rows:
        grid.add_row(Text(f"{label}:"), Text(value))
    return grid


def _render_pollers(pollers: Mapping[str, PollerState]) -> Table:
    grid = Table.grid(expand=True, padding=(0, 1))
    grid.title = "Polling"
    grid.title_style = "bold"
    grid.add_column(style="cyan", no_wrap=True)
    grid.add_column(no_wrap=True)
    for name, state in pollers.items():
        grid.add_row(Text(name), _poller_text(state))
    return grid


def _poller_text(state: PollerState) -> Text:
    if state.consecutive_failures:
        return Text(f"failing x{state.consecutive_failures}", style="bold red")
    if state.last_success_at is None:
        return Text("pending", style="dim")
    return Text(
        f"ok {state.last_success_at.astimezone().strftime('%H:%M:%S')}", style="green"
    )


def _render_errors(errors: list[UiErrorRow]) -> Table | Text:
    if not errors:
        return Text("No recent errors", style="dim")
    grid = Table.grid(expand=True, padding=(0, 1))
    grid.title = "Recent errors"
    grid.title_style = "bold red"
    grid.add_column(style="dim", no_wrap=True)
    grid.add_column(overflow="ellipsis")
    for row in errors:
        grid.add_row(
            Text(row.at.astimezone().strftime("%H:%M:%S")), Text(f"[{row.task}] {row.text}")
        )
    return grid
