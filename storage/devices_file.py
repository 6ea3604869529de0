from __future__ import annotations

import csv
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TextIO

from models.records import CHANNEL_COUNT, CalendarDate, Reading
from settings import get_settings

logger = logging.getLogger(__name__)

CUTOFF_YEAR = 2024
CUTOFF_MONTH = 3

_DEVICE_FIELD = 1
_TIMESTAMP_FIELD = 3
_FIRST_VALUE_FIELD = 4
_MIN_FIELDS = _FIRST_VALUE_FIELD + CHANNEL_COUNT


class InputUnavailableError(RuntimeError):
    """Raised when the devices file cannot be opened or read."""


class RowDecodeError(ValueError):
    """Raised for a data row that cannot be turned into a reading."""


def is_eligible(day: CalendarDate) -> bool:
    """Readings from March 2024 onwards are kept."""
    return (day.year, day.month) >= (CUTOFF_YEAR, CUTOFF_MONTH)


def decode_row(fields: Sequence[str]) -> Reading:
    if len(fields) < _MIN_FIELDS:
        raise RowDecodeError("missing fields")

    device = fields[_DEVICE_FIELD].strip()
    if not device:
        raise RowDecodeError("missing device")

    try:
        day = CalendarDate.parse(fields[_TIMESTAMP_FIELD].strip()[:10])
    except ValueError as exc:
        raise RowDecodeError("invalid date") from exc

    raw_values = fields[_FIRST_VALUE_FIELD:_MIN_FIELDS]
    try:
        values = tuple(float(raw) for raw in raw_values)
    except ValueError as exc:
        raise RowDecodeError("invalid numeric value") from exc

    return Reading(device=device, date=day, values=values)


@dataclass
class LoadResult:
    """Eligible readings plus counters describing what was dropped."""

    readings: List[Reading] = field(default_factory=list)
    total_rows: int = 0
    excluded_rows: int = 0
    skipped_rows: int = 0


class DevicesFile:
    """Pipe-delimited export of device readings with a header row."""

    def __init__(self, path: Path, encoding: str = "utf-8") -> None:
        self.path = path
        self.encoding = encoding

    @contextmanager
    def open_text(self) -> Iterator[TextIO]:
        try:
            handle = self.path.open("r", encoding=self.encoding, newline="")
        except OSError as exc:
            raise InputUnavailableError(
                f"Cannot open input file {str(self.path)!r}: {exc.strerror or exc}"
            ) from exc
        with handle:
            yield handle

    def load(self) -> LoadResult:
        """Read every row, keeping eligible readings in file order."""
        result = LoadResult()
        context = {"input_path": str(self.path)}

        try:
            with self.open_text() as handle:
                reader = csv.reader(handle, delimiter="|", quoting=csv.QUOTE_NONE)
                next(reader, None)
                for fields in reader:
                    if not fields or not any(part.strip() for part in fields):
                        continue
                    result.total_rows += 1
                    try:
                        reading = decode_row(fields)
                    except RowDecodeError as exc:
                        result.skipped_rows += 1
                        logger.warning(
                            "Skipping row: %s",
                            exc,
                            extra={**context, "row_number": reader.line_num, "reason": str(exc)},
                        )
                        continue

                    if not is_eligible(reading.date):
                        result.excluded_rows += 1
                        continue
                    result.readings.append(reading)
        except (OSError, UnicodeDecodeError) as exc:
            raise InputUnavailableError(
                f"Cannot read input file {str(self.path)!r}: {exc}"
            ) from exc

        logger.info(
            "Loaded devices file",
            extra={**context, "record_count": len(result.readings), "row_count": result.total_rows},
        )
        return result


def build_devices_file(path: Optional[str] = None) -> DevicesFile:
    source = get_settings().input_path if path is None else path
    return DevicesFile(Path(source))
