"""Periodic poll task that runs one fetch-and-apply cycle per tick."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal, Protocol

from .errors import DashboardError, MalformedPayloadError
from .telemetry import (
    NullTelemetrySink,
    PayloadRejectedEvent,
    PollErrorEvent,
    PollMetrics,
    TelemetrySink,
)

logger = logging.getLogger(__name__)

type PollOutcome = Literal["applied", "skipped", "stale"]


class PollStep(Protocol):
    """One fetch-and-apply cycle."""

    async def __call__(self) -> PollOutcome:  # pragma: no cover - protocol
        """Run the cycle and report whether its result was applied."""
        ...


@dataclass(frozen=True, slots=True)
class PollerState:
    """Runtime snapshot of a poller."""

    name: str
    interval: float
    cycles: int
    consecutive_failures: int
    last_outcome: str | None
    last_success_at: datetime | None
    last_error: str | None


class PeriodicPoller:
    """Runs *step* every *interval* seconds until stopped.

    A :class:`DashboardError` raised by a cycle is logged and reported to the
    telemetry sink, and the next tick simply tries again.
    """

    def __init__(
        self,
        name: str,
        step: PollStep,
        *,
        interval: float,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        """Create a poller named *name* running *step* every *interval* seconds."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._name = name
        self._step = step
        self._interval = float(interval)
        self._telemetry = telemetry or NullTelemetrySink()
        self._stopped = asyncio.Event()
        self._wake = asyncio.Event()
        self._cycles = 0
        self._consecutive_failures = 0
        self._last_outcome: str | None = None
        self._last_success_at: datetime | None = None
        self._last_error: str | None = None

    @property
    def name(self) -> str:
        """Return the poller name."""
        return self._name

    async def run(self) -> None:
        """Poll until :meth:`stop` is called."""
        logger.debug("Poller %s started (interval=%.1fs)", self._name, self._interval)
        while not self._stopped.is_set():
            await self.run_once()
            await self._sleep_until_next_tick()
        logger.debug("Poller %s stopped", self._name)

    async def run_once(self) -> PollOutcome | None:
        """Run a single cycle, isolating controller errors; return its outcome."""
        loop = asyncio.get_running_loop()
        started_at = datetime.now(UTC)
        started = loop.time()
        self._cycles += 1
        try:
            outcome = await self._step()
        except DashboardError as exc:
            self._consecutive_failures += 1
            self._last_error = f"{exc.__class__.__name__}: {exc}"
            logger.warning(
                "%s poll failed (attempt %s): %s",
                self._name,
                self._consecutive_failures,
                exc,
            )
            self._telemetry.record_event(
                PollErrorEvent(
                    task=self._name,
                    attempt=self._consecutive_failures,
                    error_type=exc.__class__.__name__,
                    message=str(exc),
                )
            )
            if isinstance(exc, MalformedPayloadError):
                self._telemetry.record_event(
                    PayloadRejectedEvent(endpoint=self._name, message=str(exc))
                )
            return None
        except Exception as exc:
            self._last_error = f"{exc.__class__.__name__}: {exc}"
            logger.exception("Unexpected failure in %s poller", self._name)
            self._telemetry.record_event(
                PollErrorEvent(
                    task=self._name,
                    attempt=self._consecutive_failures + 1,
                    error_type=exc.__class__.__name__,
                    message=str(exc),
                )
            )
            raise

        self._consecutive_failures = 0
        self._last_outcome = outcome
        if outcome == "applied":
            self._last_success_at = datetime.now(UTC)
            self._last_error = None
        self._telemetry.record_metric(
            PollMetrics(
                task=self._name,
                outcome=outcome,
                duration_ms=(loop.time() - started) * 1000.0,
                poll_started_at=started_at,
                poll_completed_at=datetime.now(UTC),
            )
        )
        return outcome

    def trigger(self) -> None:
        """Cut the current wait short so the next cycle starts immediately."""
        self._wake.set()

    async def stop(self) -> None:
        """Request termination of the poll loop."""
        self._stopped.set()
        self._wake.set()
        logger.debug("Poller %s received stop request", self._name)

    def snapshot(self) -> PollerState:
        """Return a runtime snapshot of the poller."""
        return PollerState(
            name=self._name,
            interval=self._interval,
            cycles=self._cycles,
            consecutive_failures=self._consecutive_failures,
            last_outcome=self._last_outcome,
            last_success_at=self._last_success_at,
            last_error=self._last_error,
        )

    async def _sleep_until_next_tick(self) -> None:
        with contextlib.suppress(TimeoutError):
            async with asyncio.timeout(self._interval):
                await self._wake.wait()
        self._wake.clear()
