"""Tests for circular history buffer reconstruction."""

from __future__ import annotations

import pytest

from irrigation_dashboard.config import HistoryConfig
from irrigation_dashboard.errors import MalformedPayloadError
from irrigation_dashboard.models import CircularSnapshot
from irrigation_dashboard.ringbuffer import (
    reconstruct,
    reconstruct_history,
    reconstruct_snapshot,
)
from irrigation_dashboard.schemas import HistoryResponse


def test_filled_buffer_is_rotated_to_oldest_first() -> None:
    """A wrapped buffer starts at the write cursor."""
    assert reconstruct([30, 31, 27, 28, 29], write_index=2, length=5, capacity=5) == (
        27,
        28,
        29,
        30,
        31,
    )


def test_partial_buffer_returns_prefix() -> None:
    """A buffer that never wrapped returns its first ``length`` slots unchanged."""
    assert reconstruct([10, 11, 12, 0, 0], write_index=0, length=3, capacity=5) == (10, 11, 12)


def test_partial_buffer_ignores_write_index() -> None:
    """The write cursor does not affect a buffer that has not wrapped."""
    values = [10, 11, 12, 0, 0]
    assert reconstruct(values, write_index=3, length=3, capacity=5) == (10, 11, 12)


@pytest.mark.parametrize("write_index", range(6))
def test_filled_buffer_matches_left_rotation(write_index: int) -> None:
    """Filled reconstruction equals a left rotation by the write cursor."""
    values = [1, 2, 3, 4, 5, 6]
    result = reconstruct(values, write_index=write_index, length=6, capacity=6)
    assert result == tuple(values[write_index:] + values[:write_index])
    assert sorted(result) == values


def test_empty_buffer_returns_empty_regardless_of_cursor() -> None:
    """Zero valid samples produce an empty series."""
    assert reconstruct([0, 0, 0], write_index=2, length=0, capacity=3) == ()
    assert reconstruct([], write_index=7, length=0, capacity=3) == ()


def test_reconstruct_does_not_mutate_input() -> None:
    """The physical slot list is left untouched."""
    values = [3, 4, 1, 2]
    reconstruct(values, write_index=2, length=4, capacity=4)
    assert values == [3, 4, 1, 2]


@pytest.mark.parametrize(
    ("values", "write_index", "length", "capacity"),
    [
        ([1, 2, 3], 0, 3, 4),  # fewer slots than capacity
        ([1, 2, 3, 4, 5], 0, 3, 4),  # more slots than capacity
        ([1, 2, 3], 0, 4, 3),  # length beyond capacity
        ([1, 2, 3], 0, -1, 3),  # negative length
        ([1, 2, 3], 3, 3, 3),  # cursor past the end
        ([1, 2, 3], -1, 3, 3),  # negative cursor
        ([], 0, 0, -1),  # negative capacity
    ],
)
def test_malformed_cursor_or_layout_is_rejected(
    values: list[int], write_index: int, length: int, capacity: int
) -> None:
    """Inconsistent layouts raise instead of producing a guessed series."""
    with pytest.raises(MalformedPayloadError):
        reconstruct(values, write_index=write_index, length=length, capacity=capacity)


def test_reconstruct_snapshot_reads_fields() -> None:
    """Snapshot helper forwards every field."""
    snapshot = CircularSnapshot(values=[5, 6, 7], write_index=1, length=3, capacity=3)
    assert reconstruct_snapshot(snapshot) == (6, 7, 5)


def _history(**overrides: object) -> HistoryResponse:
    payload: dict[str, object] = {
        "soil": [300.0, 310.0, 270.0, 280.0, 290.0],
        "temp": [230.0, 231.0, 227.0, 228.0, None],
        "cpu": [13.0, 14.0, 10.0, 11.0, 12.0],
        "idx": 2,
        "len": 5,
        "cap": 5,
    }
    payload.update(overrides)
    return HistoryResponse.model_validate(payload)


def test_reconstruct_history_rotates_every_metric_with_shared_cursor() -> None:
    """All metrics use the same cursor and keep missing readings as gaps."""
    history = reconstruct_history(_history(), HistoryConfig(capacity=5), sequence=4)
    assert history.sequence == 4
    assert history.capacity == 5
    assert history.get("soil") == (270.0, 280.0, 290.0, 300.0, 310.0)
    assert history.get("temp") == (227.0, 228.0, None, 230.0, 231.0)
    assert history.get("cpu") == (10.0, 11.0, 12.0, 13.0, 14.0)
    assert history.get("unknown") == ()


def test_reconstruct_history_applies_unit_scale() -> None:
    """Configured multipliers convert raw samples to display units."""
    config = HistoryConfig(capacity=5, temp_scale=0.1)
    history = reconstruct_history(_history(), config)
    temp = history.get("temp")
    assert temp[2] is None
    assert [temp[i] for i in (0, 1, 3, 4)] == pytest.approx([22.7, 22.8, 23.0, 23.1])
    assert history.get("soil")[0] == 270.0


def test_reconstruct_history_falls_back_to_configured_capacity() -> None:
    """Without ``cap`` the configured capacity decides whether arrays are valid."""
    payload = _history(cap=None)
    history = reconstruct_history(payload, HistoryConfig(capacity=5))
    assert history.capacity == 5
    with pytest.raises(MalformedPayloadError):
        reconstruct_history(payload, HistoryConfig(capacity=240))


def test_reconstruct_history_names_the_malformed_metric() -> None:
    """A short array in one metric fails the whole payload."""
    payload = _history(cpu=[1.0, 2.0])
    with pytest.raises(MalformedPayloadError, match="cpu history"):
        reconstruct_history(payload, HistoryConfig(capacity=5))


def test_history_series_mapping_is_read_only() -> None:
    """Reconstructed series cannot be modified in place."""
    history = reconstruct_history(_history(), HistoryConfig(capacity=5))
    with pytest.raises(TypeError):
        history.series["soil"] = ()  # type: ignore[index]
