"""Splitting of the record store into per-worker slices."""

from __future__ import annotations

from typing import List


def resolve_worker_count(available: int, total: int) -> int:
    """Never more workers than records, and at least one."""
    return max(1, min(available, total))


def partition(total: int, workers: int) -> List[range]:
    """Split ``range(total)`` into ``workers`` contiguous, near-equal slices.

    The first ``total % workers`` slices hold one extra element.
    """
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {workers}.")
    if total < 0:
        raise ValueError(f"Record count cannot be negative, got {total}.")
    if total == 0:
        return []

    base, remainder = divmod(total, workers)
    slices: List[range] = []
    start = 0
    for index in range(workers):
        end = start + base + (1 if index < remainder else 0)
        slices.append(range(start, end))
        start = end
    return slices
