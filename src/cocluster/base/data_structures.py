"""
Core data structures for the distributed co-clustering engine.

This module provides the small value types exchanged between the engine's
components: axis partitions, the cluster-average table and per-iteration
state.
"""

from typing import Tuple, List
from dataclasses import dataclass
import torch
from torch import Tensor


ROWS = 0
COLUMNS = 1

AXIS_NAMES = {ROWS: 'rows', COLUMNS: 'columns'}


@dataclass(frozen=True)
class Partition:
    """Contiguous split of an axis of ``n`` items across ``size`` workers.

    Worker ``i`` owns ``counts[i]`` items starting at global index
    ``displacements[i]``. Computed once per axis and never modified.
    """

    counts: Tuple[int, ...]
    displacements: Tuple[int, ...]

    def __post_init__(self):
        if len(self.counts) != len(self.displacements):
            raise ValueError(
                f"counts and displacements differ in length: "
                f"{len(self.counts)} != {len(self.displacements)}"
            )

    @property
    def size(self) -> int:
        """Number of workers."""
        return len(self.counts)

    @property
    def n(self) -> int:
        """Number of items on the axis."""
        return sum(self.counts)

    def __len__(self) -> int:
        return self.size

    def slice_of(self, rank: int) -> slice:
        """Global index range owned by ``rank``."""
        start = self.displacements[rank]
        return slice(start, start + self.counts[rank])

    def owner_of(self, index: int) -> int:
        """Rank owning global ``index``."""
        if not 0 <= index < self.n:
            raise IndexError(f"index {index} out of range for axis of {self.n}")
        for rank in range(self.size):
            if self.displacements[rank] <= index < self.displacements[rank] + self.counts[rank]:
                return rank
        raise IndexError(f"index {index} not owned by any worker")


@dataclass
class ClusterAverageTable:
    """Mean matrix value for every (row-label, column-label) combination.

    Recomputed every iteration. ``sums`` and ``counts`` are the globally
    reduced statistics the averages were finalized from.
    """

    averages: Tensor  # (K, L)
    sums: Tensor      # (K * L,) float64
    counts: Tensor    # (K * L,) int64

    @property
    def n_row_clusters(self) -> int:
        return self.averages.shape[0]

    @property
    def n_col_clusters(self) -> int:
        return self.averages.shape[1]

    def empty_mask(self) -> Tensor:
        """(K, L) boolean mask of co-clusters without any entry."""
        return (self.counts == 0).reshape(self.n_row_clusters, self.n_col_clusters)

    def to(self, device: torch.device) -> 'ClusterAverageTable':
        """Move the averages to ``device``; statistics stay on the CPU."""
        return ClusterAverageTable(
            averages=self.averages.to(device),
            sums=self.sums,
            counts=self.counts
        )


@dataclass(frozen=True)
class AxisUpdate:
    """Global outcome of one label update phase."""

    num_changed: int
    distortion: float


@dataclass
class IterationState:
    """Progress of one refinement iteration, reported then discarded."""

    iteration: int
    num_row_updates: int
    num_col_updates: int
    row_distortion: float
    col_distortion: float
    n_elements: int
    elapsed: float = 0.0

    @property
    def num_updated(self) -> int:
        """Total number of rows and columns that changed label."""
        return self.num_row_updates + self.num_col_updates

    @property
    def distortion(self) -> float:
        """Total distortion after the column phase, covering every entry."""
        return self.col_distortion

    @property
    def average_distortion(self) -> float:
        if self.n_elements == 0:
            return 0.0
        return self.distortion / self.n_elements

    def as_dict(self) -> dict:
        return {
            'iteration': self.iteration,
            'num_updated': self.num_updated,
            'num_row_updates': self.num_row_updates,
            'num_col_updates': self.num_col_updates,
            'distortion': self.distortion,
            'average_distortion': self.average_distortion,
            'elapsed': self.elapsed,
        }


def history_to_lists(history: List[IterationState]) -> dict:
    """Column-wise view of an iteration history, handy for plotting."""
    return {
        'iteration': [s.iteration for s in history],
        'num_updated': [s.num_updated for s in history],
        'average_distortion': [s.average_distortion for s in history],
    }
