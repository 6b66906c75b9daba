"""Shared test doubles for the irrigation dashboard tests."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import httpx
import pytest

from irrigation_dashboard.errors import TransportError
from irrigation_dashboard.http import AsyncHttpClientProtocol
from irrigation_dashboard.telemetry import TelemetryEvent, TelemetryMetric, TelemetrySink

STATUS_PAYLOAD: dict[str, object] = {
    "soil": 2310,
    "tempC": 24.5,
    "cpuPct": 17,
    "pumpOn": False,
    "lockout": False,
    "onTime": 0,
    "mode": "AUTO",
}
CONFIG_PAYLOAD: dict[str, object] = {
    "dryOn": 2600,
    "wetOff": 2000,
    "mode": "AUTO",
    "logPeriodMs": 5000,
    "pumpPwm": 200,
}
HISTORY_PAYLOAD: dict[str, object] = {
    "soil": [2300.0, 2310.0, 2280.0, 2290.0],
    "temp": [24.0, 24.5, 23.0, 23.5],
    "cpu": [15.0, 17.0, 12.0, 14.0],
    "idx": 2,
    "len": 4,
    "cap": 4,
}


class RoutingHttpClient(AsyncHttpClientProtocol):
    """HTTP client stub serving canned JSON per path and recording every request."""

    def __init__(self, routes: Mapping[str, object] | None = None) -> None:
        """Serve *routes* (path to JSON body, ``Exception`` to raise, or ``int`` status)."""
        self.routes: dict[str, object] = dict(
            routes
            if routes is not None
            else {
                "/api/status": STATUS_PAYLOAD,
                "/api/config/get": CONFIG_PAYLOAD,
                "/api/history": HISTORY_PAYLOAD,
            }
        )
        self.gates: dict[str, asyncio.Event] = {}
        self.requests: list[tuple[str, str, dict[str, str]]] = []
        self.closed = False

    def gate(self, path: str) -> asyncio.Event:
        """Hold requests to *path* until the returned event is set."""
        event = asyncio.Event()
        self.gates[path] = event
        return event

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Record the form body and answer from the routing table."""
        self.requests.append(("POST", url, dict(data)))
        return await self._respond("POST", url)

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """Record the request and answer from the routing table."""
        self.requests.append(("GET", url, {}))
        return await self._respond("GET", url)

    async def close(self) -> None:
        """Remember that the client was closed."""
        self.closed = True

    def paths(self, method: str = "GET") -> list[str]:
        """Return the paths requested with *method*, in order."""
        return [path for verb, path, _ in self.requests if verb == method]

    async def _respond(self, method: str, url: str) -> httpx.Response:
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        request = httpx.Request(method, f"http://controller{url}")
        route = self.routes.get(url, "OK")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            raise TransportError(f"{method} {url} returned HTTP {route}", status_code=route)
        if isinstance(route, str):
            return httpx.Response(200, text=route, request=request)
        return httpx.Response(200, json=route, request=request)


class RecordingTelemetrySink(TelemetrySink):
    """Telemetry sink collecting every signal for assertions."""

    def __init__(self) -> None:
        """Start with empty buffers."""
        self.events: list[TelemetryEvent] = []
        self.metrics: list[TelemetryMetric] = []

    def record_event(self, event: TelemetryEvent) -> None:
        """Collect *event*."""
        self.events.append(event)

    def record_metric(self, metric: TelemetryMetric) -> None:
        """Collect *metric*."""
        self.metrics.append(metric)


@pytest.fixture
def http_client() -> RoutingHttpClient:
    """Return a routing HTTP stub answering every controller endpoint."""
    return RoutingHttpClient()


@pytest.fixture
def telemetry() -> RecordingTelemetrySink:
    """Return a telemetry sink that records everything."""
    return RecordingTelemetrySink()
