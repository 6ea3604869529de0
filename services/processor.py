"""Batch orchestration: load, aggregate, report."""

from __future__ import annotations

import logging
import time
from functools import lru_cache, partial
from typing import Optional

from datastore.accumulator_table import build_table
from models.summary import RunStatus, RunSummary
from services.aggregator import ParallelAggregator
from services.report import build_report_rows
from settings import FOLD_LOCKING_MODES, get_settings
from storage.devices_file import DevicesFile, build_devices_file
from storage.report_file import ReportFile, build_report_file

logger = logging.getLogger(__name__)


class ProcessorService:
    """Runs one pass over the devices file and writes the statistics table."""

    def __init__(
        self,
        source: DevicesFile,
        sink: ReportFile,
        aggregator: ParallelAggregator,
    ) -> None:
        self.source = source
        self.sink = sink
        self.aggregator = aggregator

    def run(self) -> RunSummary:
        """Process the input end to end.

        Raises ``InputUnavailableError`` before anything is aggregated when the
        input cannot be read. Worker failures propagate unchanged.
        """
        start_time = time.perf_counter()
        context = {"input_path": str(self.source.path)}

        loaded = self.source.load()
        if not loaded.readings:
            logger.info(
                "No records found after March 2024; nothing to do",
                extra={**context, "status": RunStatus.empty.value},
            )
            return RunSummary(
                status=RunStatus.empty,
                input_path=str(self.source.path),
                total_rows=loaded.total_rows,
                excluded_rows=loaded.excluded_rows,
                skipped_rows=loaded.skipped_rows,
                processing_ms=self._elapsed_ms(start_time),
            )

        result = self.aggregator.aggregate(loaded.readings)
        rows = build_report_rows(result.accumulators)
        row_count = self.sink.write(rows)

        summary = RunSummary(
            status=RunStatus.processed,
            input_path=str(self.source.path),
            output_path=str(self.sink.path),
            total_rows=loaded.total_rows,
            excluded_rows=loaded.excluded_rows,
            skipped_rows=loaded.skipped_rows,
            record_count=result.record_count,
            worker_count=result.worker_count,
            group_count=result.group_count,
            row_count=row_count,
            processing_ms=self._elapsed_ms(start_time),
        )
        logger.info(
            "Results written",
            extra={
                **context,
                "output_path": summary.output_path,
                "group_count": summary.group_count,
                "row_count": summary.row_count,
                "processing_ms": summary.processing_ms,
                "status": summary.status.value,
            },
        )
        return summary

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)


@lru_cache
def build_default_processor(
    input_path: Optional[str] = None,
    output_path: Optional[str] = None,
    workers: Optional[int] = None,
    fold_locking: Optional[str] = None,
) -> ProcessorService:
    """Factory that wires the processor from settings, with optional overrides."""
    settings = get_settings()
    locking = fold_locking or settings.fold_locking
    if locking not in FOLD_LOCKING_MODES:
        raise ValueError(f"Unknown fold locking mode {locking!r}.")
    aggregator = ParallelAggregator(
        workers=workers or settings.worker_count,
        table_factory=partial(build_table, locking),
    )
    return ProcessorService(
        source=build_devices_file(input_path),
        sink=build_report_file(output_path),
        aggregator=aggregator,
    )
