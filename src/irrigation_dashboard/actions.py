"""Device commands: configuration updates, restart, and web UI update."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from .config import DashboardConfig
from .errors import DeviceActionError, TransportError
from .http import AsyncHttpClientProtocol

logger = logging.getLogger(__name__)

CONFIG_SET_PATH: Final = "/api/config/set"
RESTART_PATH: Final = "/api/restart"
WEBUI_UPDATE_PATH: Final = "/api/webui/update"

# Form field names accepted by /api/config/set, keyed by their Python spelling.
CONFIG_FIELDS: Final[dict[str, str]] = {
    "dry_on": "dryOn",
    "wet_off": "wetOff",
    "mode": "mode",
    "log_period_ms": "logPeriodMs",
    "pump_pwm": "pumpPwm",
    "min_on_ms": "minOnMs",
    "min_off_ms": "minOffMs",
    "limit_window_sec": "limitWindowSec",
    "max_on_sec_in_window": "maxOnSecInWindow",
    "soft_ramp": "softRamp",
}
_WIRE_FIELDS: Final[frozenset[str]] = frozenset(CONFIG_FIELDS.values())


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    """Result of a device command.

    ``reload_after`` is the number of seconds after which the controller is
    assumed to be reachable again (0 when it never went away).
    """

    action: str
    message: str
    reload_after: float = 0.0


def encode_config_form(updates: Mapping[str, object]) -> dict[str, str]:
    """Return the form body for a partial or full configuration update.

    Keys may use either the Python (``dry_on``) or the wire (``dryOn``) spelling.
    ``None`` and empty values are left out so the controller keeps its current
    setting. Booleans are sent as ``1``/``0``.

    Raises:
        ValueError: If a key is not a known configuration field.

    """
    form: dict[str, str] = {}
    for key, value in updates.items():
        wire = CONFIG_FIELDS.get(key, key)
        if wire not in _WIRE_FIELDS:
            raise ValueError(f"Unknown configuration field '{key}'")
        if value is None:
            continue
        if isinstance(value, bool):
            text = "1" if value else "0"
        else:
            text = str(value).strip()
        if not text:
            continue
        form[wire] = text
    return form


class DeviceActions:
    """Issues fire-and-forget commands to the controller."""

    def __init__(
        self, http_client: AsyncHttpClientProtocol, config: DashboardConfig | None = None
    ) -> None:
        """Bind the actions to *http_client* with reload delays from *config*."""
        self._http_client = http_client
        self._config = config or DashboardConfig()

    async def set_config(self, updates: Mapping[str, object]) -> ActionOutcome:
        """Apply a partial or full configuration update."""
        form = encode_config_form(updates)
        if not form:
            raise DeviceActionError("No configuration values to send")
        message = await self._post("config", CONFIG_SET_PATH, form)
        logger.info("Configuration updated (%s)", ", ".join(sorted(form)))
        return ActionOutcome(action="config", message=message or "OK")

    async def restart(self) -> ActionOutcome:
        """Ask the controller to reboot."""
        message = await self._post("restart", RESTART_PATH, {})
        delay = self._config.restart_reload_delay
        logger.info("Restart requested; expecting controller back in %.0fs", delay)
        return ActionOutcome(action="restart", message=message or "Restarting", reload_after=delay)

    async def update_webui(self) -> ActionOutcome:
        """Ask the controller to download the latest web UI and restart."""
        message = await self._post("update-webui", WEBUI_UPDATE_PATH, {})
        delay = self._config.webui_reload_delay
        logger.info("Web UI update requested; expecting controller back in %.0fs", delay)
        return ActionOutcome(
            action="update-webui", message=message or "Updating", reload_after=delay
        )

    async def _post(self, action: str, path: str, form: Mapping[str, str]) -> str:
        try:
            response = await self._http_client.post_form(path, data=form)
        except TransportError as exc:
            raise DeviceActionError(f"{action} failed: {exc}") from exc
        return response.text.strip()
