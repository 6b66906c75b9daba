"""Line chart rendering onto a fixed-size character-cell surface.

``render`` is the only drawing entry point: it clears the surface and redraws
everything from the supplied series, so it can be called on every timer tick or
terminal resize without leaving stale cells behind. ``ChartSurface.to_text``
converts the cells into a Rich ``Text`` for display.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from rich.style import Style
from rich.text import Text

from .errors import InsufficientDataError
from .models import RenderWindow, Sample
from .sampler import MIN_PLOTTABLE_SAMPLES, sample

logger = logging.getLogger(__name__)

GRID_LINES = 5
PLACEHOLDER_TEXT = "Waiting for data..."
MIN_WIDTH = 32
MIN_HEIGHT = 7

_GRID_CHAR = "─"
_POINT_CHAR = "•"
_GRID_STYLE = "grey23"
_AXIS_LABEL_STYLE = "grey50"
_PLACEHOLDER_STYLE = "dim italic"


@dataclass(frozen=True, slots=True)
class MetricStyle:
    """Colour and overlay label used when charting a metric."""

    color: str
    label: str | None


_GREEN = "#4caf50"
_METRIC_STYLES: dict[str, MetricStyle] = {
    "soil": MetricStyle(color=_GREEN, label="Soil ADC"),
    "temp": MetricStyle(color="#ff9800", label="Temp C"),
    "cpu": MetricStyle(color="#2196f3", label="CPU %"),
}
_DEFAULT_STYLE = MetricStyle(color=_GREEN, label=None)


def style_for_metric(metric: object) -> MetricStyle:
    """Return the chart style for *metric*; unknown metrics get the default style."""
    if isinstance(metric, str):
        return _METRIC_STYLES.get(metric, _DEFAULT_STYLE)
    return _DEFAULT_STYLE


@dataclass(frozen=True, slots=True)
class RenderSummary:
    """Describes what the most recent ``render`` call drew."""

    mode: Literal["placeholder", "chart"]
    metric: str
    points: int = 0
    minimum: float | None = None
    maximum: float | None = None
    latest: float | None = None


class ChartSurface:
    """Fixed-size grid of styled character cells."""

    def __init__(self, width: int = 72, height: int = 16) -> None:
        """Create a blank surface of *width* x *height* cells (clamped to a minimum)."""
        self._width = max(MIN_WIDTH, int(width))
        self._height = max(MIN_HEIGHT, int(height))
        self._cells: list[list[tuple[str, str]]] = []
        self.last_render: RenderSummary | None = None
        self.clear()

    @property
    def width(self) -> int:
        """Return the surface width in cells."""
        return self._width

    @property
    def height(self) -> int:
        """Return the surface height in cells."""
        return self._height

    def resize(self, width: int, height: int) -> None:
        """Change the surface dimensions, discarding everything drawn so far."""
        self._width = max(MIN_WIDTH, int(width))
        self._height = max(MIN_HEIGHT, int(height))
        self.clear()

    def clear(self) -> None:
        """Reset every cell to an unstyled blank."""
        self._cells = [[(" ", "") for _ in range(self._width)] for _ in range(self._height)]
        self.last_render = None

    def put(self, x: int, y: int, char: str, style: str = "") -> None:
        """Set a single cell; coordinates outside the surface are ignored."""
        if 0 <= x < self._width and 0 <= y < self._height:
            self._cells[y][x] = (char[:1] or " ", style)

    def write(
        self,
        x: int,
        y: int,
        text: str,
        style: str = "",
        *,
        align: Literal["left", "right"] = "left",
    ) -> None:
        """Write *text* on row *y*, starting at *x* or ending at *x* when right-aligned."""
        start = x - len(text) + 1 if align == "right" else x
        for offset, char in enumerate(text):
            self.put(start + offset, y, char, style)

    def hline(self, y: int, x0: int, x1: int, char: str, style: str = "") -> None:
        """Draw a horizontal run of *char* between columns *x0* and *x1* inclusive."""
        for x in range(min(x0, x1), max(x0, x1) + 1):
            self.put(x, y, char, style)

    def line(self, x0: int, y0: int, x1: int, y1: int, char: str, style: str = "") -> None:
        """Draw a straight segment using Bresenham's algorithm."""
        dx = abs(x1 - x0)
        dy = -abs(y1 - y0)
        sx = 1 if x0 < x1 else -1
        sy = 1 if y0 < y1 else -1
        err = dx + dy
        while True:
            self.put(x0, y0, char, style)
            if x0 == x1 and y0 == y1:
                return
            doubled = 2 * err
            if doubled >= dy:
                err += dy
                x0 += sx
            if doubled <= dx:
                err += dx
                y0 += sy

    def char_at(self, x: int, y: int) -> str:
        """Return the character stored at (*x*, *y*)."""
        return self._cells[y][x][0]

    def style_at(self, x: int, y: int) -> str:
        """Return the style stored at (*x*, *y*)."""
        return self._cells[y][x][1]

    def rows(self) -> list[str]:
        """Return the plain-text rows of the surface."""
        return ["".join(char for char, _ in row) for row in self._cells]

    def to_text(self) -> Text:
        """Return the surface as a Rich ``Text`` with per-cell styles."""
        text = Text(no_wrap=True, overflow="crop")
        for index, row in enumerate(self._cells):
            if index:
                text.append("\n")
            run_chars: list[str] = []
            run_style = row[0][1] if row else ""
            for char, style in row:
                if style != run_style and run_chars:
                    text.append("".join(run_chars), style=_as_style(run_style))
                    run_chars = []
                run_style = style
                run_chars.append(char)
            if run_chars:
                text.append("".join(run_chars), style=_as_style(run_style))
        return text


def render(surface: ChartSurface, series: Sequence[Sample], metric: str) -> None:
    """Draw *series* as a line chart for *metric* on *surface*.

    The surface is cleared first. Fewer than two samples (ignoring missing or
    non-finite readings) produce a placeholder instead of axes and a line. A flat
    series is drawn across the middle of the plot rather than along an edge.
    """
    surface.clear()
    metric_style = style_for_metric(metric)
    numeric = [value for value in series if value is not None and math.isfinite(value)]
    if len(series) < MIN_PLOTTABLE_SAMPLES or len(numeric) < MIN_PLOTTABLE_SAMPLES:
        _draw_placeholder(surface, metric)
        return

    lo = min(numeric)
    hi = max(numeric)
    span = hi - lo
    if not math.isfinite(span):
        logger.debug("Range of %s overflows (%g to %g); not drawing", metric, lo, hi)
        _draw_placeholder(surface, metric)
        return
    if span == 0:
        lo -= 0.5
        hi += 0.5
        span = 1.0

    labels = [f"{hi - span * i / (GRID_LINES - 1):.1f}" for i in range(GRID_LINES)]
    left = max(len(label) for label in labels) + 1
    right = surface.width - 1
    top = 1
    bottom = surface.height - 1
    plot_rows = bottom - top

    for i, label in enumerate(labels):
        y = top + round(plot_rows * i / (GRID_LINES - 1))
        surface.hline(y, left, right, _GRID_CHAR, _GRID_STYLE)
        surface.write(left - 2, y, label, _AXIS_LABEL_STYLE, align="right")

    count = len(series)
    plot_cols = right - left
    previous: tuple[int, int] | None = None
    for index, value in enumerate(series):
        if value is None or not math.isfinite(value):
            previous = None
            continue
        x = left + round(index * plot_cols / (count - 1))
        y = top + round((hi - value) / span * plot_rows)
        if previous is None:
            surface.put(x, y, _POINT_CHAR, metric_style.color)
        else:
            surface.line(previous[0], previous[1], x, y, _POINT_CHAR, metric_style.color)
        previous = (x, y)

    latest = numeric[-1]
    caption = f"{metric_style.label}: " if metric_style.label else "Current: "
    surface.write(left, 0, f"{caption}{latest:.1f}", f"bold {metric_style.color}")
    surface.write(right, 0, f"{count} pts", _AXIS_LABEL_STYLE, align="right")
    surface.last_render = RenderSummary(
        mode="chart",
        metric=metric,
        points=count,
        minimum=min(numeric),
        maximum=max(numeric),
        latest=latest,
    )


def render_window(
    surface: ChartSurface,
    series: Sequence[Sample],
    window: RenderWindow,
    log_period_ms: float | None,
) -> None:
    """Sample *series* to *window* and render it, drawing the placeholder when too short.

    Without a known log period only the full series (``span_seconds == 0``) can be
    shown; a timed window waits for the controller configuration.
    """
    if log_period_ms is None:
        if window.span_seconds != 0:
            _draw_placeholder(surface, window.metric, cleared=False)
            return
        log_period_ms = 1000.0
    try:
        visible = sample(series, window.span_seconds, log_period_ms)
    except InsufficientDataError:
        logger.debug("Not enough %s samples to chart", window.metric)
        visible = ()
    render(surface, visible, window.metric)


def _draw_placeholder(surface: ChartSurface, metric: str, *, cleared: bool = True) -> None:
    if not cleared:
        surface.clear()
    x = max(0, (surface.width - len(PLACEHOLDER_TEXT)) // 2)
    surface.write(x, surface.height // 2, PLACEHOLDER_TEXT, _PLACEHOLDER_STYLE)
    surface.last_render = RenderSummary(mode="placeholder", metric=metric)


def _as_style(style: str) -> Style | str:
    return Style.parse(style) if style else ""
