"""Reconstruction of the controller's circular history buffers.

The controller keeps several parallel fixed-size ring buffers (one per metric)
driven by a single write cursor. It transmits the physical slot layout together
with the cursor and the count of valid samples; this module rotates that layout
into an oldest-to-newest sequence.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from types import MappingProxyType

from .config import HistoryConfig
from .errors import MalformedPayloadError
from .models import CircularSnapshot, HistorySnapshot, MetricSeries, Sample
from .schemas import HistoryResponse

logger = logging.getLogger(__name__)


def reconstruct[T](
    values: Sequence[T], write_index: int, length: int, capacity: int
) -> tuple[T, ...]:
    """Return the logical contents of a ring buffer, oldest first.

    A buffer that has never wrapped (``length < capacity``) holds its samples in
    ``values[0:length]``. Once filled, the oldest sample sits at ``write_index``
    (the next slot due to be overwritten) and the result is a left rotation of
    ``values`` by ``write_index``.

    Raises:
        MalformedPayloadError: If ``values`` does not hold exactly ``capacity``
            slots, or the cursor fields fall outside the buffer.

    """
    if capacity < 0:
        raise MalformedPayloadError(f"ring buffer capacity must not be negative (got {capacity})")
    if not values and length == 0:
        return ()
    if len(values) != capacity:
        raise MalformedPayloadError(
            f"ring buffer holds {len(values)} slot(s) but capacity is {capacity}"
        )
    if not 0 <= length <= capacity:
        raise MalformedPayloadError(f"ring buffer length {length} outside [0, {capacity}]")
    if length == 0 or capacity == 0:
        return ()
    if not 0 <= write_index < capacity:
        raise MalformedPayloadError(f"write index {write_index} outside [0, {capacity})")
    if length < capacity:
        return tuple(values[:length])
    return tuple(values[write_index:]) + tuple(values[:write_index])


def reconstruct_snapshot[T](snapshot: CircularSnapshot[T]) -> tuple[T, ...]:
    """Reconstruct a :class:`CircularSnapshot`."""
    return reconstruct(snapshot.values, snapshot.write_index, snapshot.length, snapshot.capacity)


def reconstruct_history(
    payload: HistoryResponse,
    config: HistoryConfig | None = None,
    *,
    sequence: int = 0,
) -> HistorySnapshot:
    """Rebuild every metric in *payload* into an immutable :class:`HistorySnapshot`.

    Each metric is rotated independently with the shared cursor, then scaled to
    display units. The snapshot is only built once every metric succeeded, so a
    malformed metric never yields a partially updated history.
    """
    cfg = config or HistoryConfig()
    capacity = payload.capacity if payload.capacity is not None else cfg.capacity
    if payload.capacity is not None and payload.capacity != cfg.capacity:
        logger.debug(
            "Controller reports history capacity %d (configured %d)",
            payload.capacity,
            cfg.capacity,
        )
    rebuilt: dict[str, MetricSeries] = {}
    for metric, values in payload.metric_arrays().items():
        snapshot = CircularSnapshot(
            values=values,
            write_index=payload.write_index,
            length=payload.length,
            capacity=capacity,
        )
        try:
            ordered = reconstruct_snapshot(snapshot)
        except MalformedPayloadError as exc:
            raise MalformedPayloadError(f"{metric} history: {exc}") from exc
        rebuilt[metric] = _scale(ordered, cfg.scale_for(metric))
    logger.debug(
        "Reconstructed %d sample(s) per metric (capacity=%d, idx=%d, filled=%s)",
        payload.length,
        capacity,
        payload.write_index,
        payload.length >= capacity,
    )
    return HistorySnapshot(
        series=MappingProxyType(rebuilt), capacity=capacity, sequence=sequence
    )


def _scale(samples: Sequence[Sample], factor: float) -> MetricSeries:
    if factor == 1.0:
        return tuple(samples)
    return tuple(None if value is None else value * factor for value in samples)
