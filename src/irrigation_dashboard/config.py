"""Configuration schemas for the irrigation dashboard."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal, TypedDict

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    field_validator,
)

MetricName = Literal["soil", "temp", "cpu"]

DEFAULT_HISTORY_CAPACITY = 240


class _PollingOverrides(TypedDict, total=False):
    """Typed override map for :class:`PollingConfig` initialisation."""

    status_interval: float
    config_interval: float
    history_interval: float
    status_timeout: float
    history_timeout: float


class HttpClientConfig(BaseModel):
    """HTTP client tuning parameters for controller requests."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(
        default=HttpUrl("http://192.168.4.1"),
        description="Root URL of the irrigation controller web server",
    )
    user_agent: str = Field(
        default="irrigation-dashboard/0.1",
        description="User agent sent with every request",
    )
    max_connections: NonNegativeInt = Field(
        default=2,
        description="Maximum concurrent HTTP connections (the device serves one at a time)",
    )
    enable_http2: bool = Field(
        default=False, description="Whether HTTP/2 should be attempted when available"
    )

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> HttpClientConfig:
        """Build a configuration from environment variables.

        Recognised variables:
            - ``IRRIGATION_BASE_URL`` overrides the controller URL
            - ``IRRIGATION_HTTP2`` toggles HTTP/2 negotiation (bool)
        """
        source = dict(os.environ if env is None else env)
        updates: dict[str, object] = {}
        base_url = source.get("IRRIGATION_BASE_URL")
        if base_url:
            try:
                updates["base_url"] = HttpUrl(base_url)
            except ValueError as exc:
                raise ValueError("IRRIGATION_BASE_URL must be an http(s) URL") from exc
        http2 = source.get("IRRIGATION_HTTP2")
        if http2 is not None:
            updates["enable_http2"] = _parse_bool_flag(http2)
        return cls.model_validate(updates)


class PollingConfig(BaseModel):
    """Periods and deadlines for the independent polling tasks."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status_interval: PositiveFloat = Field(
        default=2.0, description="Seconds between /api/status polls"
    )
    config_interval: PositiveFloat = Field(
        default=60.0, description="Seconds between /api/config/get polls"
    )
    history_interval: PositiveFloat = Field(
        default=30.0, description="Seconds between /api/history polls"
    )
    status_timeout: PositiveFloat = Field(
        default=3.0, description="Deadline (seconds) for status and config requests"
    )
    history_timeout: PositiveFloat = Field(
        default=8.0, description="Deadline (seconds) for history requests"
    )

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> PollingConfig:
        """Construct a configuration from environment variables.

        Recognised variables:
            - ``IRRIGATION_STATUS_INTERVAL`` status poll period (float seconds)
            - ``IRRIGATION_CONFIG_INTERVAL`` config poll period (float seconds)
            - ``IRRIGATION_HISTORY_INTERVAL`` history poll period (float seconds)
            - ``IRRIGATION_STATUS_TIMEOUT`` status/config request deadline (float seconds)
            - ``IRRIGATION_HISTORY_TIMEOUT`` history request deadline (float seconds)
        """
        source = dict(os.environ if env is None else env)
        updates: _PollingOverrides = {}

        float_overrides: dict[str, tuple[str, str]] = {
            "IRRIGATION_STATUS_INTERVAL": (
                "status_interval",
                "IRRIGATION_STATUS_INTERVAL must be a floating point value",
            ),
            "IRRIGATION_CONFIG_INTERVAL": (
                "config_interval",
                "IRRIGATION_CONFIG_INTERVAL must be a floating point value",
            ),
            "IRRIGATION_HISTORY_INTERVAL": (
                "history_interval",
                "IRRIGATION_HISTORY_INTERVAL must be a floating point value",
            ),
            "IRRIGATION_STATUS_TIMEOUT": (
                "status_timeout",
                "IRRIGATION_STATUS_TIMEOUT must be a floating point value",
            ),
            "IRRIGATION_HISTORY_TIMEOUT": (
                "history_timeout",
                "IRRIGATION_HISTORY_TIMEOUT must be a floating point value",
            ),
        }

        for env_key, (field, error_message) in float_overrides.items():
            raw = source.get(env_key)
            if raw is None:
                continue
            try:
                updates[field] = float(raw)
            except ValueError as exc:
                raise ValueError(error_message) from exc

        return cls(**updates)


class HistoryConfig(BaseModel):
    """Interpretation of the controller's circular history buffer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    capacity: PositiveInt = Field(
        default=DEFAULT_HISTORY_CAPACITY,
        description=(
            "Ring buffer size used when the controller does not transmit 'cap'. "
            "Every history array must have exactly this many slots."
        ),
    )
    soil_scale: float = Field(default=1.0, description="Multiplier applied to soil samples")
    temp_scale: float = Field(
        default=1.0,
        description="Multiplier applied to temperature samples (0.1 for tenths of a degree)",
    )
    cpu_scale: float = Field(default=1.0, description="Multiplier applied to CPU samples")

    def scale_for(self, metric: str) -> float:
        """Return the unit multiplier for *metric* (1.0 when unknown)."""
        return {
            "soil": self.soil_scale,
            "temp": self.temp_scale,
            "cpu": self.cpu_scale,
        }.get(metric, 1.0)

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> HistoryConfig:
        """Construct a configuration from environment variables.

        Recognised variables:
            - ``IRRIGATION_HISTORY_CAPACITY`` ring buffer size (integer)
            - ``IRRIGATION_TEMP_SCALE`` temperature multiplier (float)
        """
        source = dict(os.environ if env is None else env)
        updates: dict[str, object] = {}
        raw_capacity = source.get("IRRIGATION_HISTORY_CAPACITY")
        if raw_capacity is not None:
            try:
                updates["capacity"] = int(raw_capacity)
            except ValueError as exc:
                raise ValueError("IRRIGATION_HISTORY_CAPACITY must be an integer") from exc
        raw_scale = source.get("IRRIGATION_TEMP_SCALE")
        if raw_scale is not None:
            try:
                updates["temp_scale"] = float(raw_scale)
            except ValueError as exc:
                raise ValueError("IRRIGATION_TEMP_SCALE must be a floating point value") from exc
        return cls.model_validate(updates)


def _default_window_choices() -> tuple[int, ...]:
    return (0, 60, 300, 900, 1800, 3600)


class DashboardConfig(BaseModel):
    """Presentation defaults for the terminal dashboard."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_metric: MetricName = Field(default="soil", description="Metric charted at start-up")
    default_window_seconds: NonNegativeInt = Field(
        default=0, description="Initial chart window in seconds (0 shows all samples)"
    )
    window_choices: tuple[NonNegativeInt, ...] = Field(
        default_factory=_default_window_choices,
        description="Windows cycled by the 'w' key, in seconds",
    )
    refresh_hz: PositiveFloat = Field(default=4.0, description="Screen redraws per second")
    restart_reload_delay: PositiveFloat = Field(
        default=10.0, description="Seconds to wait for the controller after a restart"
    )
    webui_reload_delay: PositiveFloat = Field(
        default=15.0, description="Seconds to wait for the controller after a web UI update"
    )

    @field_validator("window_choices")
    @classmethod
    def _ensure_choices(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("window_choices must contain at least one entry")
        return tuple(dict.fromkeys(value))


class Settings(BaseModel):
    """Aggregate of every configuration section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> Settings:
        """Resolve every section from the same environment mapping."""
        return cls(
            http=HttpClientConfig.from_environment(env=env),
            polling=PollingConfig.from_environment(env=env),
            history=HistoryConfig.from_environment(env=env),
        )


_FALSE_STRINGS: frozenset[str] = frozenset({"0", "false", "no", "off"})


def _parse_bool_flag(raw: str) -> bool:
    """Interpret configuration flags accepting common "disabled" spellings."""
    return raw.strip().lower() not in _FALSE_STRINGS
