"""Parallel aggregation of readings into monthly accumulators."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from datastore.accumulator_table import Accumulator, AccumulatorTable
from models.records import Reading
from services.partitioner import partition, resolve_worker_count

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Final accumulator snapshot plus how it was produced."""

    accumulators: List[Accumulator] = field(default_factory=list)
    record_count: int = 0
    worker_count: int = 0

    @property
    def group_count(self) -> int:
        return len(self.accumulators)


class ParallelAggregator:
    """Folds a record store into a shared table using a fixed pool of threads."""

    def __init__(
        self,
        workers: int = 4,
        table_factory: Callable[[], AccumulatorTable] = AccumulatorTable,
    ) -> None:
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}.")
        self.workers = workers
        self.table_factory = table_factory

    def aggregate(self, readings: Sequence[Reading]) -> AggregationResult:
        if not readings:
            return AggregationResult()

        table = self.table_factory()
        worker_count = resolve_worker_count(self.workers, len(readings))
        slices = partition(len(readings), worker_count)

        with ThreadPoolExecutor(
            max_workers=worker_count, thread_name_prefix="aggregator"
        ) as executor:
            futures = [
                executor.submit(consume_slice, table, readings, span, index)
                for index, span in enumerate(slices)
            ]
            # result() re-raises the first worker failure
            for future in futures:
                future.result()

        accumulators = table.snapshot()
        logger.info(
            "Aggregation finished",
            extra={
                "record_count": len(readings),
                "group_count": len(accumulators),
                "worker_count": worker_count,
            },
        )
        return AggregationResult(
            accumulators=accumulators,
            record_count=len(readings),
            worker_count=worker_count,
        )


def consume_slice(
    table: AccumulatorTable,
    readings: Sequence[Reading],
    span: range,
    worker: int = 0,
) -> int:
    """Fold every reading in ``span`` into ``table``, in order."""
    logger.debug(
        "Worker started",
        extra={"worker": worker, "slice_start": span.start, "slice_end": span.stop},
    )
    for index in span:
        reading = readings[index]
        handle = table.find_or_create(reading.key, index)
        table.fold(handle, reading)
    return len(span)
