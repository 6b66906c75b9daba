"""Bounded, single-flight reads of controller status, configuration, and history."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ValidationError

from .config import PollingConfig
from .errors import FetchTimeoutError, MalformedPayloadError
from .http import AsyncHttpClientProtocol
from .schemas import ConfigResponse, HistoryResponse, StatusResponse

logger = logging.getLogger(__name__)


class RequestClass(StrEnum):
    """Logical request classes; each allows at most one request in flight."""

    STATUS = "status"
    CONFIG = "config"
    HISTORY = "history"


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A controller endpoint and the request class it belongs to."""

    path: str
    request_class: RequestClass


STATUS_ENDPOINT = Endpoint("/api/status", RequestClass.STATUS)
CONFIG_ENDPOINT = Endpoint("/api/config/get", RequestClass.CONFIG)
HISTORY_ENDPOINT = Endpoint("/api/history", RequestClass.HISTORY)


@dataclass(frozen=True, slots=True)
class FetchResult[T]:
    """Parsed payload together with the sequence number of the request that produced it."""

    payload: T
    sequence: int
    endpoint: Endpoint
    elapsed_ms: float


class SingleFlight:
    """Guard admitting one holder at a time; later claimants are turned away, not queued."""

    def __init__(self, name: str) -> None:
        """Create an idle guard labelled *name* for diagnostics."""
        self._name = name
        self._busy = False

    @property
    def name(self) -> str:
        """Return the guard label."""
        return self._name

    @property
    def busy(self) -> bool:
        """Return True while a holder is inside :meth:`claim`."""
        return self._busy

    @contextlib.contextmanager
    def claim(self) -> Iterator[bool]:
        """Yield True if the guard was acquired, False if it is already held.

        An acquired guard is released on every exit path, including exceptions and
        task cancellation.
        """
        if self._busy:
            yield False
            return
        self._busy = True
        try:
            yield True
        finally:
            self._busy = False


class TelemetryFetcher:
    """Issues controller reads with per-class single-flight and per-request deadlines."""

    def __init__(
        self,
        http_client: AsyncHttpClientProtocol,
        polling: PollingConfig | None = None,
    ) -> None:
        """Bind the fetcher to *http_client* using deadlines from *polling*."""
        self._http_client = http_client
        self._polling = polling or PollingConfig()
        self._guards = {
            request_class: SingleFlight(request_class.value) for request_class in RequestClass
        }
        self._sequence = itertools.count(1)
        self._last_sequence = 0

    @property
    def last_sequence(self) -> int:
        """Return the sequence number of the most recently issued request."""
        return self._last_sequence

    def in_flight(self, request_class: RequestClass) -> bool:
        """Return True when a request of *request_class* is outstanding."""
        return self._guards[request_class].busy

    async def fetch(self, endpoint: Endpoint, timeout: float | None) -> FetchResult[object] | None:
        """Return the decoded JSON body of *endpoint*, or ``None`` when skipped.

        A request is skipped when another request of the same class is still
        outstanding. Exceeding *timeout* cancels the request.

        Raises:
            FetchTimeoutError: If the deadline expired.
            TransportError: On network failure or a non-success HTTP status.
            MalformedPayloadError: If the body is not valid JSON.

        """
        with self._guards[endpoint.request_class].claim() as acquired:
            if not acquired:
                logger.debug("Skipping %s: previous request still in flight", endpoint.path)
                return None
            sequence = next(self._sequence)
            self._last_sequence = sequence
            loop = asyncio.get_running_loop()
            started = loop.time()
            try:
                async with asyncio.timeout(timeout):
                    response = await self._http_client.get(endpoint.path)
            except TimeoutError as exc:
                logger.warning("%s cancelled after %.1fs deadline", endpoint.path, timeout or 0.0)
                raise FetchTimeoutError(
                    f"{endpoint.path} exceeded its {timeout}s deadline"
                ) from exc
            try:
                payload: object = response.json()
            except ValueError as exc:
                raise MalformedPayloadError(f"{endpoint.path} returned invalid JSON") from exc
            elapsed_ms = (loop.time() - started) * 1000.0
            logger.debug("Fetched %s (seq=%d) in %.1f ms", endpoint.path, sequence, elapsed_ms)
            return FetchResult(
                payload=payload, sequence=sequence, endpoint=endpoint, elapsed_ms=elapsed_ms
            )

    async def fetch_status(self) -> FetchResult[StatusResponse] | None:
        """Fetch and validate ``/api/status``."""
        return await self._fetch_model(
            STATUS_ENDPOINT, StatusResponse, self._polling.status_timeout
        )

    async def fetch_config(self) -> FetchResult[ConfigResponse] | None:
        """Fetch and validate ``/api/config/get``."""
        return await self._fetch_model(
            CONFIG_ENDPOINT, ConfigResponse, self._polling.status_timeout
        )

    async def fetch_history(self) -> FetchResult[HistoryResponse] | None:
        """Fetch and validate the raw ``/api/history`` ring buffers."""
        return await self._fetch_model(
            HISTORY_ENDPOINT, HistoryResponse, self._polling.history_timeout
        )

    async def _fetch_model[M: BaseModel](
        self, endpoint: Endpoint, model: type[M], timeout: float
    ) -> FetchResult[M] | None:
        result = await self.fetch(endpoint, timeout)
        if result is None:
            return None
        try:
            parsed = model.model_validate(result.payload)
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in error.get("loc", ())) or "body"
                for error in exc.errors()
            )
            raise MalformedPayloadError(
                f"{endpoint.path} payload failed validation ({fields})"
            ) from exc
        return FetchResult(
            payload=parsed,
            sequence=result.sequence,
            endpoint=endpoint,
            elapsed_ms=result.elapsed_ms,
        )
