"""Polling dashboard for an ESP32 irrigation controller."""

from __future__ import annotations

from .actions import ActionOutcome, DeviceActions, encode_config_form
from .chart import (
    ChartSurface,
    MetricStyle,
    RenderSummary,
    render,
    render_window,
    style_for_metric,
)
from .client import DashboardClient, DashboardClientDependencies
from .config import (
    DashboardConfig,
    HistoryConfig,
    HttpClientConfig,
    PollingConfig,
    Settings,
)
from .errors import (
    DashboardError,
    DeviceActionError,
    FetchTimeoutError,
    InsufficientDataError,
    MalformedPayloadError,
    TransportError,
)
from .fetcher import (
    CONFIG_ENDPOINT,
    HISTORY_ENDPOINT,
    STATUS_ENDPOINT,
    Endpoint,
    FetchResult,
    RequestClass,
    SingleFlight,
    TelemetryFetcher,
)
from .models import (
    METRICS,
    CircularSnapshot,
    DeviceConfig,
    DeviceStatus,
    HistorySnapshot,
    RenderWindow,
)
from .poller import PeriodicPoller, PollerState
from .ringbuffer import reconstruct, reconstruct_history, reconstruct_snapshot
from .sampler import points_for_span, sample
from .session import DashboardSession, SessionSnapshot, render_snapshot

__all__ = [
    "CONFIG_ENDPOINT",
    "HISTORY_ENDPOINT",
    "METRICS",
    "STATUS_ENDPOINT",
    "ActionOutcome",
    "ChartSurface",
    "CircularSnapshot",
    "DashboardClient",
    "DashboardClientDependencies",
    "DashboardConfig",
    "DashboardError",
    "DashboardSession",
    "DeviceActionError",
    "DeviceActions",
    "DeviceConfig",
    "DeviceStatus",
    "Endpoint",
    "FetchResult",
    "FetchTimeoutError",
    "HistoryConfig",
    "HistorySnapshot",
    "HttpClientConfig",
    "InsufficientDataError",
    "MalformedPayloadError",
    "MetricStyle",
    "PeriodicPoller",
    "PollerState",
    "PollingConfig",
    "RenderSummary",
    "RenderWindow",
    "RequestClass",
    "SessionSnapshot",
    "Settings",
    "SingleFlight",
    "TelemetryFetcher",
    "TransportError",
    "encode_config_form",
    "points_for_span",
    "reconstruct",
    "reconstruct_history",
    "reconstruct_snapshot",
    "render",
    "render_snapshot",
    "render_window",
    "sample",
    "style_for_metric",
]
