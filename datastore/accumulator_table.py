"""Shared table of per-device monthly accumulators.

The table is mutated concurrently by the aggregation workers. Two locks are
involved: the table lock guards lookup and insertion of entries, while each
accumulator carries its own lock for folding readings into it, so folds on
unrelated keys never wait on each other. ``SerializedAccumulatorTable`` folds
under the table lock instead and serves as the single-mutex baseline.
"""

from __future__ import annotations

import math
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from models.records import CHANNEL_COUNT, AccumulatorKey, Reading


def _add_exact(partials: List[float], value: float) -> None:
    """Add ``value`` to a list of non-overlapping partial sums (Shewchuk)."""
    i = 0
    for other in partials:
        if abs(value) < abs(other):
            value, other = other, value
        high = value + other
        low = other - (high - value)
        if low:
            partials[i] = low
            i += 1
        value = high
    partials[i:] = [value]


class Accumulator:
    """Running max/min/sum/count for each channel of one monthly group.

    Sums are exact: finite values are kept as Shewchuk partials and rounded
    once when read, so the result does not depend on fold order. Non-finite
    values are summed apart and take precedence over the finite total.
    """

    __slots__ = (
        "key", "first_seen", "max", "min", "count", "lock", "_partials", "_nonfinite",
    )

    def __init__(self, key: AccumulatorKey, first_seen: Optional[int] = None) -> None:
        self.key = key
        self.first_seen = first_seen
        self.max: List[float] = [-math.inf] * CHANNEL_COUNT
        self.min: List[float] = [math.inf] * CHANNEL_COUNT
        self.count: List[int] = [0] * CHANNEL_COUNT
        self.lock = Lock()
        self._partials: List[List[float]] = [[] for _ in range(CHANNEL_COUNT)]
        self._nonfinite: List[float] = [0.0] * CHANNEL_COUNT

    @property
    def sum(self) -> List[float]:
        return [self._channel_sum(channel) for channel in range(CHANNEL_COUNT)]

    def mean(self, channel: int) -> Optional[float]:
        if self.count[channel] == 0:
            return None
        return self._channel_sum(channel) / self.count[channel]

    def add(self, values: Iterable[float]) -> None:
        """Fold one reading's channel values in. Callers hold the right lock."""
        for channel, value in enumerate(values):
            # nan compares false both ways and never becomes an extreme;
            # between 0.0 and -0.0 max keeps 0.0 and min keeps -0.0
            current = self.max[channel]
            if value > current or (value == current == 0.0 and math.copysign(1.0, value) > 0):
                self.max[channel] = value
            current = self.min[channel]
            if value < current or (value == current == 0.0 and math.copysign(1.0, value) < 0):
                self.min[channel] = value
            if math.isfinite(value):
                _add_exact(self._partials[channel], value)
            else:
                self._nonfinite[channel] += value
            self.count[channel] += 1

    def stats(self) -> Tuple[Tuple[float, float, float, int], ...]:
        """Per-channel ``(max, min, sum, count)`` tuples."""
        return tuple(
            (self.max[c], self.min[c], self._channel_sum(c), self.count[c])
            for c in range(CHANNEL_COUNT)
        )

    def _channel_sum(self, channel: int) -> float:
        nonfinite = self._nonfinite[channel]
        if nonfinite != 0.0:
            return nonfinite
        return math.fsum(self._partials[channel])

    def __repr__(self) -> str:
        return f"Accumulator(key={self.key!r}, count={self.count!r})"


def _first_seen_order(entry: Accumulator) -> float:
    return math.inf if entry.first_seen is None else entry.first_seen


class AccumulatorTable:

    def __init__(self) -> None:
        self._entries: Dict[AccumulatorKey, Accumulator] = {}
        self._lock = Lock()

    def find_or_create(self, key: AccumulatorKey, position: Optional[int] = None) -> Accumulator:
        """Return the entry for ``key``, creating it on first sight.

        ``position`` is the index of the reading in the record store; each
        entry keeps the smallest one it was asked for.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = Accumulator(key, position)
                self._entries[key] = entry
            elif position is not None and (
                entry.first_seen is None or position < entry.first_seen
            ):
                entry.first_seen = position
            return entry

    def fold(self, handle: Accumulator, reading: Reading) -> None:
        with handle.lock:
            handle.add(reading.values)

    def snapshot(self) -> List[Accumulator]:
        """Return every accumulator ordered by the first reading that touched it.

        Entries created without a position keep their creation order, after
        the positioned ones.
        """

        with self._lock:
            entries = list(self._entries.values())
        return sorted(entries, key=_first_seen_order)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


class SerializedAccumulatorTable(AccumulatorTable):
    """Folds every reading under the table-wide lock."""

    def fold(self, handle: Accumulator, reading: Reading) -> None:
        with self._lock:
            handle.add(reading.values)


_TABLE_TYPES = {
    "entry": AccumulatorTable,
    "table": SerializedAccumulatorTable,
}


def build_table(fold_locking: str = "entry") -> AccumulatorTable:
    try:
        table_type = _TABLE_TYPES[fold_locking]
    except KeyError:
        raise ValueError(
            f"Unknown fold locking mode {fold_locking!r}; expected one of {sorted(_TABLE_TYPES)}."
        ) from None
    return table_type()
