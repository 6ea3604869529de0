"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Tuple

SENSOR_CHANNELS: Tuple[str, ...] = (
    "temperatura",
    "umidade",
    "luminosidade",
    "ruido",
    "eco2",
    "etvoc",
)
CHANNEL_COUNT = len(SENSOR_CHANNELS)


class CalendarDate(NamedTuple):
    """Year, month and day as written in the export, without calendar checks."""

    year: int
    month: int
    day: int

    @classmethod
    def parse(cls, text: str) -> CalendarDate:
        """Read a ``YYYY-MM-DD`` prefix. Only the month range is checked."""
        if len(text) < 10 or text[4] != "-" or text[7] != "-":
            raise ValueError(f"Expected YYYY-MM-DD, got {text!r}.")
        parts = (text[0:4], text[5:7], text[8:10])
        if not all(part.isdigit() for part in parts):
            raise ValueError(f"Expected YYYY-MM-DD, got {text!r}.")
        year, month, day = (int(part) for part in parts)
        if not 1 <= month <= 12:
            raise ValueError(f"Month out of range in {text!r}.")
        return cls(year, month, day)


class AccumulatorKey(NamedTuple):
    """Identity of one monthly group: compared field by field."""

    device: str
    year: int
    month: int

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single multi-channel observation parsed from the devices file."""

    device: str
    date: CalendarDate
    values: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.values) != CHANNEL_COUNT:
            raise ValueError(
                f"Reading expects {CHANNEL_COUNT} channel values, got {len(self.values)}."
            )

    @property
    def key(self) -> AccumulatorKey:
        return AccumulatorKey(self.device, self.date.year, self.date.month)
