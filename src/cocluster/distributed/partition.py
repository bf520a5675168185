"""
Balanced contiguous partitioning of an axis across workers.
"""

from ..base.data_structures import Partition


def plan_partition(n: int, size: int) -> Partition:
    """Split ``n`` items into ``size`` contiguous, balanced chunks.

    The first ``n % size`` workers receive one extra item. Workers beyond
    ``n`` receive nothing.

    Args:
        n: Number of items on the axis
        size: Number of workers

    Returns:
        Partition with per-worker counts and displacements

    Example:
        >>> plan_partition(10, 3)
        Partition(counts=(4, 3, 3), displacements=(0, 4, 7))
    """
    if size < 1:
        raise ValueError(f"size must be at least 1, got {size}")
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")

    base, remainder = divmod(n, size)
    counts = []
    displacements = []

    for i in range(size):
        if i < remainder:
            counts.append(base + 1)
            displacements.append(i * (base + 1))
        else:
            counts.append(base)
            displacements.append(i * base + remainder)

    return Partition(tuple(counts), tuple(displacements))
