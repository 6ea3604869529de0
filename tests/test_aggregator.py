"""Unit tests for the parallel aggregation engine."""

from __future__ import annotations

import threading
from functools import partial

import pytest

from datastore.accumulator_table import AccumulatorTable, build_table
from models.records import CHANNEL_COUNT, AccumulatorKey, CalendarDate, Reading
from services.aggregator import ParallelAggregator, consume_slice


def _reading(device: str, day: CalendarDate, first: float) -> Reading:
    """Helper to build deterministic sensor readings."""

    values = tuple(first * (channel + 1) + channel / 10 for channel in range(CHANNEL_COUNT))
    return Reading(device=device, date=day, values=values)


def _dataset() -> list[Reading]:
    devices = ("dev-a", "dev-b", "dev-c")
    readings: list[Reading] = []
    for index in range(60):
        device = devices[index % len(devices)]
        day = CalendarDate(2024 + (index % 7) // 5, (index % 5) + 3, (index % 27) + 1)
        readings.append(_reading(device, day, 0.1 * index - 1.7))
    return readings


def _as_mapping(result) -> dict:
    return {accumulator.key: accumulator.stats() for accumulator in result.accumulators}


def test_aggregate_empty_sequence_returns_empty_result() -> None:
    result = ParallelAggregator(workers=4).aggregate([])

    assert result.accumulators == []
    assert result.record_count == 0
    assert result.group_count == 0


def test_aggregate_two_readings_same_month() -> None:
    readings = [
        Reading("A", CalendarDate(2024, 3, 5), (10.0,) + (0.0,) * 5),
        Reading("A", CalendarDate(2024, 3, 20), (20.0,) + (0.0,) * 5),
    ]

    result = ParallelAggregator(workers=2).aggregate(readings)

    assert result.group_count == 1
    (accumulator,) = result.accumulators
    assert accumulator.key == AccumulatorKey("A", 2024, 3)
    assert accumulator.max[0] == 20.0
    assert accumulator.min[0] == 10.0
    assert accumulator.mean(0) == 15.0
    assert accumulator.count[0] == 2


def test_aggregate_caps_workers_to_record_count() -> None:
    readings = [_reading("A", CalendarDate(2024, 4, 1), 1.0)] * 3

    result = ParallelAggregator(workers=16).aggregate(readings)

    assert result.worker_count == 3
    assert result.record_count == 3


def test_group_count_matches_distinct_keys() -> None:
    readings = _dataset()
    expected = {reading.key for reading in readings}

    result = ParallelAggregator(workers=5).aggregate(readings)

    assert result.group_count == len(expected)
    assert {accumulator.key for accumulator in result.accumulators} == expected


@pytest.mark.parametrize("fold_locking", ["entry", "table"])
def test_results_are_identical_for_any_worker_count(fold_locking: str) -> None:
    readings = _dataset()
    factory = partial(build_table, fold_locking)
    serial = ParallelAggregator(workers=1, table_factory=factory).aggregate(readings)
    baseline = _as_mapping(serial)
    baseline_order = [accumulator.key for accumulator in serial.accumulators]

    for workers in (2, 3, 7, 16, len(readings)):
        result = ParallelAggregator(workers=workers, table_factory=factory).aggregate(readings)
        assert _as_mapping(result) == baseline
        assert [accumulator.key for accumulator in result.accumulators] == baseline_order


def test_locking_modes_agree() -> None:
    readings = _dataset()

    per_entry = ParallelAggregator(workers=4, table_factory=partial(build_table, "entry"))
    serialized = ParallelAggregator(workers=4, table_factory=partial(build_table, "table"))

    assert _as_mapping(per_entry.aggregate(readings)) == _as_mapping(serialized.aggregate(readings))


def test_fold_statistics_match_reference() -> None:
    readings = _dataset()
    result = ParallelAggregator(workers=6).aggregate(readings)

    for accumulator in result.accumulators:
        members = [reading for reading in readings if reading.key == accumulator.key]
        for channel in range(CHANNEL_COUNT):
            values = [reading.values[channel] for reading in members]
            assert accumulator.count[channel] == len(values)
            assert accumulator.max[channel] == max(values)
            assert accumulator.min[channel] == min(values)


def test_consume_slice_only_touches_its_range() -> None:
    readings = [
        _reading("A", CalendarDate(2024, 3, 1), 1.0),
        _reading("B", CalendarDate(2024, 3, 1), 2.0),
        _reading("C", CalendarDate(2024, 3, 1), 3.0),
    ]
    table = AccumulatorTable()

    processed = consume_slice(table, readings, range(1, 3))

    assert processed == 2
    assert [entry.key.device for entry in table.snapshot()] == ["B", "C"]


def test_workers_run_concurrently() -> None:
    barrier = threading.Barrier(2)

    class CoordinatedTable(AccumulatorTable):
        def __init__(self) -> None:
            super().__init__()
            self._waited: set[int] = set()

        def fold(self, handle, reading) -> None:
            ident = threading.get_ident()
            if ident not in self._waited:
                self._waited.add(ident)
                try:
                    barrier.wait(timeout=2.0)
                except threading.BrokenBarrierError as exc:
                    raise AssertionError("Aggregation workers did not run concurrently") from exc
            super().fold(handle, reading)

    readings = [_reading("A", CalendarDate(2024, 3, 1), 1.0), _reading("B", CalendarDate(2024, 3, 1), 2.0)]

    result = ParallelAggregator(workers=2, table_factory=CoordinatedTable).aggregate(readings)

    assert result.group_count == 2


def test_report_order_follows_input_not_scheduling() -> None:
    # the second worker creates its key before the first one gets going
    second_created = threading.Event()

    class LateFirstWorkerTable(AccumulatorTable):
        def find_or_create(self, key, position=None):
            if key.device == "P":
                second_created.wait(timeout=2.0)
            entry = super().find_or_create(key, position)
            if key.device == "Q":
                second_created.set()
            return entry

    readings = [
        _reading("P", CalendarDate(2024, 3, 1), 1.0),
        _reading("Q", CalendarDate(2024, 3, 1), 2.0),
        _reading("Q", CalendarDate(2024, 3, 2), 3.0),
    ]

    serial = ParallelAggregator(workers=1).aggregate(readings)
    parallel = ParallelAggregator(workers=2, table_factory=LateFirstWorkerTable).aggregate(readings)

    assert second_created.is_set()
    assert [entry.key.device for entry in serial.accumulators] == ["P", "Q"]
    assert [entry.key.device for entry in parallel.accumulators] == ["P", "Q"]


def test_worker_failure_propagates() -> None:
    class FailingTable(AccumulatorTable):
        def fold(self, handle, reading) -> None:
            raise MemoryError("table exhausted")

    aggregator = ParallelAggregator(workers=2, table_factory=FailingTable)

    with pytest.raises(MemoryError, match="table exhausted"):
        aggregator.aggregate([_reading("A", CalendarDate(2024, 3, 1), 1.0)] * 4)


def test_aggregator_rejects_zero_workers() -> None:
    with pytest.raises(ValueError):
        ParallelAggregator(workers=0)
