"""Pydantic schemas for the irrigation controller HTTP API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Numeric pump modes used by older firmware builds.
_PUMP_MODE_NAMES: tuple[str, ...] = ("OFF", "AUTO", "ON")


def _normalise_mode(value: object) -> object:
    """Translate numeric pump modes into their names; pass strings through."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if 0 <= value < len(_PUMP_MODE_NAMES):
            return _PUMP_MODE_NAMES[value]
        return str(value)
    return value


class StatusResponse(BaseModel):
    """Payload returned by ``GET /api/status``."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    soil: float = Field(description="Current soil moisture ADC reading.")
    temp_c: float | None = Field(
        default=None,
        validation_alias=AliasChoices("tempC", "temp_c"),
        description="Chip temperature in degrees Celsius; null when the sensor is unavailable.",
    )
    cpu_pct: float = Field(
        validation_alias=AliasChoices("cpuPct", "cpu_pct"),
        description="CPU utilisation percentage.",
    )
    pump_on: bool = Field(
        validation_alias=AliasChoices("pumpOn", "pump_on"),
        description="Whether the pump output is currently energised.",
    )
    lockout: bool = Field(description="Whether the on-time rate limit is holding the pump off.")
    on_time: float = Field(
        default=0.0,
        validation_alias=AliasChoices("onTime", "on_time_window_ms"),
        description="Pump on-time accumulated in the current limit window.",
    )
    mode: str = Field(description="Pump mode reported by the controller.")

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: object) -> object:
        return _normalise_mode(value)


class ConfigResponse(BaseModel):
    """Payload returned by ``GET /api/config/get``."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    dry_on: float = Field(
        validation_alias=AliasChoices("dryOn", "dry_on"),
        description="Soil reading at or above which AUTO mode starts the pump.",
    )
    wet_off: float = Field(
        validation_alias=AliasChoices("wetOff", "wet_off"),
        description="Soil reading at or below which AUTO mode stops the pump.",
    )
    mode: str = Field(description="Configured pump mode.")
    log_period_ms: float = Field(
        gt=0,
        validation_alias=AliasChoices("logPeriodMs", "soilLogPeriodMs", "log_period_ms"),
        description="Milliseconds between history samples.",
    )
    pump_pwm: int | None = Field(
        default=None,
        validation_alias=AliasChoices("pumpPwm", "pump_pwm"),
        description="Pump PWM duty (0-255) when exposed by the firmware.",
    )
    min_on_ms: int | None = Field(
        default=None, validation_alias=AliasChoices("minOnMs", "min_on_ms")
    )
    min_off_ms: int | None = Field(
        default=None, validation_alias=AliasChoices("minOffMs", "min_off_ms")
    )
    limit_window_sec: int | None = Field(
        default=None, validation_alias=AliasChoices("limitWindowSec", "limit_window_sec")
    )
    max_on_sec_in_window: int | None = Field(
        default=None,
        validation_alias=AliasChoices("maxOnSecInWindow", "max_on_sec_in_window"),
    )
    soft_ramp: bool | None = Field(
        default=None, validation_alias=AliasChoices("softRamp", "soft_ramp")
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: object) -> object:
        return _normalise_mode(value)


class HistoryResponse(BaseModel):
    """Raw circular-buffer payload returned by ``GET /api/history``.

    All metric arrays share the single ``idx``/``len`` cursor. ``cap`` is optional;
    when omitted the client falls back to its configured capacity.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    soil: list[float | None] = Field(description="Soil ring buffer slots.")
    temp: list[float | None] = Field(description="Temperature ring buffer slots.")
    cpu: list[float | None] = Field(description="CPU ring buffer slots.")
    write_index: int = Field(
        validation_alias=AliasChoices("idx", "write_index"),
        description="Write cursor: the next slot to be overwritten.",
    )
    length: int = Field(
        validation_alias=AliasChoices("len", "length"),
        description="Number of valid samples held in the buffer.",
    )
    capacity: int | None = Field(
        default=None,
        validation_alias=AliasChoices("cap", "capacity"),
        description="Ring buffer capacity, when transmitted.",
    )

    def metric_arrays(self) -> dict[str, list[float | None]]:
        """Return the raw arrays keyed by metric name."""
        return {"soil": self.soil, "temp": self.temp, "cpu": self.cpu}
