"""Typed data models for controller status, configuration, and telemetry history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType

type Sample = float | None
type MetricSeries = tuple[Sample, ...]

METRICS: tuple[str, ...] = ("soil", "temp", "cpu")


def _empty_series_map() -> Mapping[str, MetricSeries]:
    """Return an immutable empty mapping for default series storage."""

    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class CircularSnapshot[T]:
    """Physical layout of one ring buffer as transmitted by the controller."""

    values: Sequence[T]
    write_index: int
    length: int
    capacity: int


@dataclass(frozen=True, slots=True)
class DeviceStatus:
    """Live readings reported by ``/api/status``."""

    soil: float
    temp_c: float | None
    cpu_pct: float
    pump_on: bool
    lockout: bool
    on_time: float
    mode: str
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class DeviceConfig:
    """Controller configuration reported by ``/api/config/get``."""

    dry_on: float
    wet_off: float
    mode: str
    log_period_ms: float
    extras: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class HistorySnapshot:
    """Reconstructed, unit-scaled history for every metric.

    ``sequence`` orders snapshots by the request that produced them so a late
    response can never replace a newer one.
    """

    series: Mapping[str, MetricSeries] = field(default_factory=_empty_series_map)
    capacity: int = 0
    sequence: int = 0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def get(self, metric: str) -> MetricSeries:
        """Return the series for *metric*, or an empty series when unknown."""

        return self.series.get(metric, ())


@dataclass(frozen=True, slots=True)
class RenderWindow:
    """Operator-selected metric and trailing time span (0 means all samples)."""

    metric: str = "soil"
    span_seconds: int = 0
