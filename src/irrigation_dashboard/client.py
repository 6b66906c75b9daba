"""Public async client facade wiring fetcher, session, pollers, and device actions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .actions import ActionOutcome, DeviceActions
from .config import Settings
from .fetcher import TelemetryFetcher
from .http import AsyncHttpClientProtocol, ControllerHttpClient
from .models import DeviceConfig, DeviceStatus
from .poller import PeriodicPoller, PollerState, PollOutcome
from .ringbuffer import reconstruct_history
from .schemas import ConfigResponse, StatusResponse
from .session import DashboardSession
from .telemetry import NullTelemetrySink, TelemetrySink

logger = logging.getLogger(__name__)

STATUS_TASK = "status"
CONFIG_TASK = "config"
HISTORY_TASK = "history"


@dataclass(slots=True)
class DashboardClientDependencies:
    """Optional dependency overrides for :class:`DashboardClient`."""

    http_client: AsyncHttpClientProtocol | None = None
    settings: Settings | None = None
    telemetry: TelemetrySink | None = None
    session: DashboardSession | None = None
    fetcher: TelemetryFetcher | None = None


class DashboardClient:
    """Runs the status, config, and history pollers against one controller."""

    def __init__(self, *, dependencies: DashboardClientDependencies | None = None) -> None:
        """Wire optional dependency overrides and prepare internal state."""
        deps = dependencies or DashboardClientDependencies()
        self._settings = deps.settings or Settings()
        self._telemetry = deps.telemetry or NullTelemetrySink()
        self._http_client = deps.http_client or ControllerHttpClient(self._settings.http)
        self._fetcher = deps.fetcher or TelemetryFetcher(self._http_client, self._settings.polling)
        self._session = deps.session or DashboardSession(self._settings.dashboard)
        self._actions = DeviceActions(self._http_client, self._settings.dashboard)
        polling = self._settings.polling
        self._pollers: dict[str, PeriodicPoller] = {
            STATUS_TASK: PeriodicPoller(
                STATUS_TASK,
                self.poll_status,
                interval=polling.status_interval,
                telemetry=self._telemetry,
            ),
            CONFIG_TASK: PeriodicPoller(
                CONFIG_TASK,
                self.poll_config,
                interval=polling.config_interval,
                telemetry=self._telemetry,
            ),
            HISTORY_TASK: PeriodicPoller(
                HISTORY_TASK,
                self.poll_history,
                interval=polling.history_interval,
                telemetry=self._telemetry,
            ),
        }
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._reload_task: asyncio.Task[None] | None = None
        logger.debug("DashboardClient initialised")

    @property
    def session(self) -> DashboardSession:
        """Return the session shared with the renderer."""
        return self._session

    @property
    def settings(self) -> Settings:
        """Return the effective settings."""
        return self._settings

    async def poll_status(self) -> PollOutcome:
        """Fetch ``/api/status`` once and apply it to the session."""
        result = await self._fetcher.fetch_status()
        if result is None:
            return "skipped"
        self._session.apply_status(_to_status(result.payload))
        return "applied"

    async def poll_config(self) -> PollOutcome:
        """Fetch ``/api/config/get`` once and apply it to the session."""
        result = await self._fetcher.fetch_config()
        if result is None:
            return "skipped"
        self._session.apply_config(_to_config(result.payload))
        return "applied"

    async def poll_history(self) -> PollOutcome:
        """Fetch ``/api/history`` once, rebuild every metric, and swap it into the session."""
        result = await self._fetcher.fetch_history()
        if result is None:
            return "skipped"
        history = reconstruct_history(
            result.payload, self._settings.history, sequence=result.sequence
        )
        if not self._session.apply_history(history):
            return "stale"
        return "applied"

    async def refresh(self) -> dict[str, PollOutcome | None]:
        """Run one cycle of every poller; failed cycles report ``None``."""
        outcomes: dict[str, PollOutcome | None] = {}
        for name in (CONFIG_TASK, STATUS_TASK, HISTORY_TASK):
            outcomes[name] = await self._pollers[name].run_once()
        return outcomes

    def request_refresh(self, *names: str) -> None:
        """Wake the named pollers (all of them when none are given)."""
        for name in names or tuple(self._pollers):
            self._pollers[name].trigger()

    async def start(self) -> None:
        """Start every poller as an independent background task."""
        if self._tasks:
            return
        for name, poller in self._pollers.items():
            self._tasks[name] = asyncio.create_task(poller.run(), name=f"poller-{name}")
        logger.info("DashboardClient polling %s", self._http_client_label())

    async def set_config(self, updates: Mapping[str, object]) -> ActionOutcome:
        """Send a configuration update and re-read the configuration."""
        outcome = await self._actions.set_config(updates)
        self.request_refresh(CONFIG_TASK, STATUS_TASK)
        return outcome

    async def restart(self) -> ActionOutcome:
        """Restart the controller and schedule a full refresh once it is back."""
        outcome = await self._actions.restart()
        self._after_reboot(outcome)
        return outcome

    async def update_webui(self) -> ActionOutcome:
        """Update the controller web UI and schedule a full refresh once it is back."""
        outcome = await self._actions.update_webui()
        self._after_reboot(outcome)
        return outcome

    def poller_states(self) -> Mapping[str, PollerState]:
        """Return a snapshot of every poller."""
        return MappingProxyType({name: p.snapshot() for name, p in self._pollers.items()})

    async def shutdown(self) -> None:
        """Stop pollers, cancel background tasks, and close the HTTP client.

        The HTTP client is closed even when a poller died with an unexpected
        exception; that exception is re-raised afterwards.
        """
        for poller in self._pollers.values():
            await poller.stop()
        tasks = list(self._tasks.values())
        if self._reload_task is not None:
            tasks.append(self._reload_task)
        for task in tasks:
            task.cancel()
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._tasks.clear()
            self._reload_task = None
            await self._http_client.close()
            logger.info("DashboardClient shutdown complete")
        failures = [result for result in results if isinstance(result, Exception)]
        if failures:
            raise failures[0]

    def _after_reboot(self, outcome: ActionOutcome) -> None:
        # Responses to requests issued before the reboot must not be applied.
        self._session.invalidate_history(self._fetcher.last_sequence)
        if not self._tasks or outcome.reload_after <= 0:
            return
        if self._reload_task is not None:
            self._reload_task.cancel()
        self._reload_task = asyncio.create_task(
            self._reload_after(outcome.reload_after), name="reload-after-reboot"
        )

    async def _reload_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        logger.info("Refreshing after controller reboot")
        self.request_refresh()

    def _http_client_label(self) -> str:
        return str(getattr(self._http_client, "base_url", self._settings.http.base_url))


def _to_status(payload: StatusResponse) -> DeviceStatus:
    return DeviceStatus(
        soil=payload.soil,
        temp_c=payload.temp_c,
        cpu_pct=payload.cpu_pct,
        pump_on=payload.pump_on,
        lockout=payload.lockout,
        on_time=payload.on_time,
        mode=payload.mode,
    )


def _to_config(payload: ConfigResponse) -> DeviceConfig:
    extras = {
        key: value
        for key, value in payload.model_dump(
            exclude={"dry_on", "wet_off", "mode", "log_period_ms"}
        ).items()
        if value is not None
    }
    return DeviceConfig(
        dry_on=payload.dry_on,
        wet_off=payload.wet_off,
        mode=payload.mode,
        log_period_ms=payload.log_period_ms,
        extras=MappingProxyType(extras),
    )
