"""Turns final accumulators into report rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from datastore.accumulator_table import Accumulator
from models.records import SENSOR_CHANNELS


@dataclass(frozen=True)
class ReportRow:
    device: str
    period: str
    sensor: str
    maximum: float
    mean: float
    minimum: float


def build_report_rows(accumulators: Iterable[Accumulator]) -> List[ReportRow]:
    """One row per accumulator and observed channel, in accumulator order, then channel order."""
    rows: List[ReportRow] = []
    for accumulator in accumulators:
        for channel, sensor in enumerate(SENSOR_CHANNELS):
            mean = accumulator.mean(channel)
            if mean is None:
                continue
            rows.append(
                ReportRow(
                    device=accumulator.key.device,
                    period=accumulator.key.period,
                    sensor=sensor,
                    maximum=accumulator.max[channel],
                    mean=mean,
                    minimum=accumulator.min[channel],
                )
            )
    return rows
