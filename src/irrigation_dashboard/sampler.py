"""Trailing time-window selection over a reconstructed series."""

from __future__ import annotations

import math
from collections.abc import Sequence
from fractions import Fraction

from .errors import InsufficientDataError

MIN_PLOTTABLE_SAMPLES = 2


def points_for_span(span_seconds: float, log_period_ms: float) -> int:
    """Return how many samples cover *span_seconds* at one sample per *log_period_ms*.

    Exact rational arithmetic keeps ``60 s @ 5000 ms`` at 12 samples; a float
    product would land a hair above 12 and round up to 13.
    """
    if log_period_ms <= 0:
        raise ValueError(f"log period must be positive (got {log_period_ms})")
    if span_seconds < 0:
        raise ValueError(f"span must not be negative (got {span_seconds})")
    return math.ceil(Fraction(span_seconds) * 1000 / Fraction(log_period_ms))


def sample[T](series: Sequence[T], span_seconds: float, log_period_ms: float) -> tuple[T, ...]:
    """Return the most recent samples of *series* covering *span_seconds*.

    ``span_seconds == 0`` selects the whole series. The controller logs at a fixed
    cadence and sends no per-sample timestamps, so the sample count is the only
    proxy for elapsed time. The input is never modified.

    Raises:
        InsufficientDataError: If *series* holds fewer than two samples.
        ValueError: If *span_seconds* is negative or *log_period_ms* is not positive.

    """
    if len(series) < MIN_PLOTTABLE_SAMPLES:
        raise InsufficientDataError(f"{len(series)} sample(s) available; need at least 2")
    if span_seconds == 0:
        if log_period_ms <= 0:
            raise ValueError(f"log period must be positive (got {log_period_ms})")
        return tuple(series)
    count = min(max(points_for_span(span_seconds, log_period_ms), 0), len(series))
    if count == 0:
        return ()
    return tuple(series[-count:])
