"""Dashboard runtime wiring Rich Live with the dashboard client."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal as _signal
import sys
import termios
import tty
from typing import Any

from rich.console import Console
from rich.live import Live

from ..chart import MIN_HEIGHT, MIN_WIDTH, ChartSurface
from ..client import HISTORY_TASK, DashboardClient
from ..models import METRICS
from ..session import DashboardSession
from .renderer import FOOTER_HEIGHT, HEADER_HEIGHT, SIDE_WIDTH, render_layout
from .telemetry_sink import UiTelemetrySink
from .view_model import build_ui_snapshot, window_label

_METRIC_KEYS = {"SOIL": "soil", "TEMP": "temp", "CPU": "cpu"}


async def run_ui(
    client: DashboardClient,
    *,
    telemetry: UiTelemetrySink | None = None,
    header_text: str,
) -> None:
    """Run the Rich dashboard until a quit key or shutdown signal is received."""
    session = client.session
    stop_event = asyncio.Event()
    console = Console()
    refresh_hz = client.settings.dashboard.refresh_hz
    size = console.size
    surface = ChartSurface(*compute_chart_size(size.width, size.height))
    message: str | None = None
    key_queue: asyncio.Queue[str] = asyncio.Queue()

    kb = _KeyboardReader(key_queue)
    kb.start()

    async def _shutdown_watcher() -> None:
        await _wait_for_shutdown_signal()
        stop_event.set()

    watcher = asyncio.create_task(_shutdown_watcher())
    try:
        with Live(console=console, refresh_per_second=int(refresh_hz), screen=True) as live:
            while not stop_event.is_set():
                while not key_queue.empty():
                    key = key_queue.get_nowait()
                    note, refresh, should_quit = _process_key(key, session)
                    if note is not None:
                        message = note
                    if refresh:
                        client.request_refresh(HISTORY_TASK)
                    if should_quit:
                        stop_event.set()
                        break
                width, height = compute_chart_size(console.size.width, console.size.height)
                if (width, height) != (surface.width, surface.height):
                    surface.resize(width, height)
                snap = build_ui_snapshot(
                    session.snapshot(),
                    header_text=header_text,
                    pollers=client.poller_states(),
                    telemetry=telemetry.snapshot() if telemetry is not None else None,
                    message=message,
                )
                live.update(render_layout(snap, surface=surface))
                await asyncio.sleep(1.0 / refresh_hz)
    finally:
        kb.stop()
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher


async def _wait_for_shutdown_signal() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    registered: list[int] = []
    for signum in (_signal.SIGINT, _signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except (NotImplementedError, RuntimeError):
            continue
        registered.append(int(signum))
    try:
        await stop_event.wait()
    finally:
        for signum in registered:
            loop.remove_signal_handler(signum)


class _KeyboardReader:
    """Minimal cbreak-mode keyboard reader that emits simple key tokens to a queue."""

    def __init__(self, queue: asyncio.Queue[str]) -> None:
        self._queue = queue
        self._orig_attrs: Any | None = None
        self._loop = asyncio.get_running_loop()
        self._fd = sys.stdin.fileno()
        self._running = False

    def start(self) -> None:
        if not sys.stdin.isatty():  # no TTY, skip key handling
            return
        self._orig_attrs = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._running = True
        self._loop.add_reader(self._fd, self._on_readable)

    def stop(self) -> None:
        if not sys.stdin.isatty():
            return
        if self._running:
            self._loop.remove_reader(self._fd)
            self._running = False
        if self._orig_attrs is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._orig_attrs)  # type: ignore[arg-type]
            self._orig_attrs = None

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, 8)
        except OSError:
            return
        for token in _parse_keys(data):
            self._queue.put_nowait(token)


_ESC = 0x1B
_ARROWS = {b"[C": "NEXT", b"[D": "PREV"}
_LETTERS = {
    ord("s"): "SOIL",
    ord("t"): "TEMP",
    ord("c"): "CPU",
    ord("w"): "WINDOW",
    ord("r"): "REFRESH",
    ord("q"): "QUIT",
}


def _parse_keys(data: bytes) -> list[str]:
    """Parse raw bytes into tokens: SOIL, TEMP, CPU, NEXT, PREV, WINDOW, REFRESH, QUIT."""
    out: list[str] = []
    i = 0
    n = len(data)
    while i < n:
        b = data[i]
        if b == _ESC and i + 2 < n and data[i + 1 : i + 3] in _ARROWS:
            out.append(_ARROWS[data[i + 1 : i + 3]])
            i += 3
            continue
        token = _LETTERS.get(b) or _LETTERS.get(ord(chr(b).lower()))
        if token is not None:
            out.append(token)
        i += 1
    return out


def _process_key(key: str, session: DashboardSession) -> tuple[str | None, bool, bool]:
    """Apply a key token to *session*; return (message, refresh_history, should_quit)."""
    if key in _METRIC_KEYS:
        session.select_metric(_METRIC_KEYS[key])
        return f"Showing {_METRIC_KEYS[key]}", False, False
    if key in ("NEXT", "PREV"):
        current = session.window.metric
        position = METRICS.index(current) if current in METRICS else -1
        step = 1 if key == "NEXT" else -1
        metric = METRICS[(position + step) % len(METRICS)]
        session.select_metric(metric)
        return f"Showing {metric}", False, False
    if key == "WINDOW":
        span = session.cycle_window()
        return f"Window: {window_label(span)}", False, False
    if key == "REFRESH":
        return "Refreshing history", True, False
    if key == "QUIT":
        return None, False, True
    return None, False, False


# Panel border plus horizontal padding around the chart text.
_PANEL_CHROME_WIDTH = 4
_PANEL_CHROME_HEIGHT = 2


def compute_chart_size(width: int, height: int) -> tuple[int, int]:
    """Return the chart surface size that fills the chart panel for a console of this size."""
    chart_width = width - SIDE_WIDTH - _PANEL_CHROME_WIDTH
    chart_height = height - HEADER_HEIGHT - FOOTER_HEIGHT - _PANEL_CHROME_HEIGHT
    return max(MIN_WIDTH, chart_width), max(MIN_HEIGHT, chart_height)
