# tests/test_partition.py
"""
Partition planner: balanced, contiguous, deterministic splits.
"""

from __future__ import annotations

import pytest

from cocluster.distributed import plan_partition
from cocluster.base import Partition


def test_ten_items_over_three_workers():
    part = plan_partition(10, 3)
    assert part.counts == (4, 3, 3)
    assert part.displacements == (0, 4, 7)


@pytest.mark.parametrize("n", [0, 1, 2, 5, 7, 16, 101])
@pytest.mark.parametrize("size", [1, 2, 3, 4, 8, 13])
def test_partition_covers_axis_without_gaps(n, size):
    part = plan_partition(n, size)

    assert len(part) == size
    assert sum(part.counts) == n
    assert part.n == n
    assert max(part.counts) - min(part.counts) <= 1

    # contiguous: each slice starts where the previous one ended
    owned = []
    for rank in range(size):
        assert part.displacements[rank] == sum(part.counts[:rank])
        owned.extend(range(n)[part.slice_of(rank)])
    assert owned == list(range(n))

    # non-decreasing displacements
    assert list(part.displacements) == sorted(part.displacements)


def test_more_workers_than_items_gives_empty_slices():
    part = plan_partition(2, 5)
    assert part.counts == (1, 1, 0, 0, 0)
    assert part.displacements == (0, 1, 2, 2, 2)


def test_empty_axis():
    part = plan_partition(0, 4)
    assert part.counts == (0, 0, 0, 0)


def test_owner_of():
    part = plan_partition(10, 3)
    assert [part.owner_of(i) for i in range(10)] == [0] * 4 + [1] * 3 + [2] * 3
    with pytest.raises(IndexError):
        part.owner_of(10)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        plan_partition(10, 0)
    with pytest.raises(ValueError):
        plan_partition(-1, 2)
    with pytest.raises(ValueError):
        Partition((1, 2), (0,))


def test_partition_is_immutable():
    part = plan_partition(4, 2)
    with pytest.raises(AttributeError):
        part.counts = (4, 0)
