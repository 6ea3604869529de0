from __future__ import annotations

import pytest

from services.partitioner import partition, resolve_worker_count


def test_partition_covers_range_without_overlap() -> None:
    slices = partition(10, 3)

    assert slices == [range(0, 4), range(4, 7), range(7, 10)]
    covered = [index for span in slices for index in span]
    assert covered == list(range(10))


@pytest.mark.parametrize("total, workers", [(1, 1), (7, 7), (8, 3), (100, 6), (5, 2)])
def test_partition_sizes_differ_by_at_most_one(total: int, workers: int) -> None:
    slices = partition(total, workers)

    assert len(slices) == workers
    sizes = [len(span) for span in slices]
    assert max(sizes) - min(sizes) <= 1
    assert sum(sizes) == total
    remainder = total % workers
    assert all(size == total // workers + 1 for size in sizes[:remainder])


def test_partition_is_deterministic() -> None:
    assert partition(37, 5) == partition(37, 5)


def test_partition_of_empty_store_has_no_slices() -> None:
    assert partition(0, 4) == []


def test_partition_rejects_invalid_worker_count() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        partition(10, 0)


def test_resolve_worker_count_caps_to_record_count() -> None:
    assert resolve_worker_count(available=8, total=3) == 3
    assert resolve_worker_count(available=2, total=100) == 2
    assert resolve_worker_count(available=4, total=0) == 1
