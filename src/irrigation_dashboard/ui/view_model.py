"""Typed UI view model for the Rich dashboard.

Flattens a session snapshot, poller states, and recent telemetry into one
immutable value consumed by the pure renderer functions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..models import DeviceConfig, DeviceStatus
from ..poller import PollerState
from ..session import SessionSnapshot
from .telemetry_sink import UiTelemetrySnapshot

_MAX_ERRORS = 5


@dataclass(frozen=True, slots=True)
class UiErrorRow:
    """A recent poll failure shown in the side panel."""

    at: datetime
    task: str
    text: str


@dataclass(frozen=True, slots=True)
class UiSnapshot:
    """Immutable snapshot fed to the renderer."""

    generated_at: datetime
    header_text: str
    session: SessionSnapshot
    pollers: Mapping[str, PollerState] = field(default_factory=dict[str, PollerState])
    errors: list[UiErrorRow] = field(default_factory=list[UiErrorRow])
    rejected_payloads: int = 0
    last_rejection: str | None = None
    message: str | None = None


def build_ui_snapshot(
    session: SessionSnapshot,
    *,
    header_text: str,
    pollers: Mapping[str, PollerState] | None = None,
    telemetry: UiTelemetrySnapshot | None = None,
    message: str | None = None,
) -> UiSnapshot:
    """Combine the pieces the renderer needs into a :class:`UiSnapshot`."""
    errors: list[UiErrorRow] = []
    rejected_payloads = 0
    last_rejection: str | None = None
    if telemetry is not None:
        if telemetry.recent_rejections:
            rejected_payloads = len(telemetry.recent_rejections)
            latest = telemetry.recent_rejections[-1]
            last_rejection = f"{latest.endpoint}: {latest.message}"
        for event in telemetry.recent_poll_errors[-_MAX_ERRORS:]:
            errors.append(
                UiErrorRow(
                    at=event.emitted_at,
                    task=event.task,
                    text=f"{event.error_type}: {event.message or '-'}",
                )
            )
        errors.reverse()
    return UiSnapshot(
        generated_at=datetime.now(UTC),
        header_text=header_text,
        session=session,
        pollers=dict(pollers or {}),
        errors=errors,
        rejected_payloads=rejected_payloads,
        last_rejection=last_rejection,
        message=message,
    )


def status_rows(status: DeviceStatus | None) -> list[tuple[str, str]]:
    """Return (label, value) pairs for the live status panel."""
    if status is None:
        return [("Status", "waiting...")]
    return [
        ("Soil (ADC)", _fmt_number(status.soil)),
        ("Temp (C)", "-" if status.temp_c is None else f"{status.temp_c:.1f}"),
        ("CPU", f"{_fmt_number(status.cpu_pct)}%"),
        ("Pump", "ON" if status.pump_on else "OFF"),
        ("Lockout", "YES" if status.lockout else "No"),
        ("On time", _fmt_number(status.on_time)),
        ("Mode", status.mode),
        ("Updated", status.received_at.astimezone().strftime("%H:%M:%S")),
    ]


def config_rows(config: DeviceConfig | None) -> list[tuple[str, str]]:
    """Return (label, value) pairs for the configuration panel."""
    if config is None:
        return [("Config", "waiting...")]
    rows = [
        ("Dry on", _fmt_number(config.dry_on)),
        ("Wet off", _fmt_number(config.wet_off)),
        ("Mode", config.mode),
        ("Log period", f"{config.log_period_ms / 1000.0:g}s"),
    ]
    rows.extend(
        (key.replace("_", " ").capitalize(), str(value)) for key, value in config.extras.items()
    )
    return rows


def window_label(span_seconds: int) -> str:
    """Return a compact label for a chart window ("all", "5m", "1h", ...)."""
    if span_seconds <= 0:
        return "all"
    if span_seconds % 3600 == 0:
        return f"{span_seconds // 3600}h"
    if span_seconds % 60 == 0:
        return f"{span_seconds // 60}m"
    return f"{span_seconds}s"


def _fmt_number(value: float) -> str:
    return f"{int(value)}" if float(value).is_integer() else f"{value:.1f}"
