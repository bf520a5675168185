"""
Core interfaces for the distributed co-clustering engine.

This module defines the abstract base classes every pluggable component must
implement: the process group used for collective communication, the compute
kernels doing the per-element work, convergence criteria and progress
reporters.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple, Dict, Any, Sequence
import torch
from torch import Tensor


class ProcessGroup(ABC):
    """Abstract group of cooperating workers (SPMD).

    Every worker runs the same control flow and calls the same collectives in
    the same order. Each collective blocks until it has completed on all
    workers and returns a freshly allocated tensor; input buffers are never
    reduced into themselves.
    """

    root: int = 0

    @property
    @abstractmethod
    def rank(self) -> int:
        """Index of this worker in ``[0, size)``."""
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of workers in the group."""
        pass

    @property
    def is_root(self) -> bool:
        """Whether this worker is the coordinating one."""
        return self.rank == self.root

    @abstractmethod
    def scatterv(self, full: Tensor, counts: Sequence[int],
                 displacements: Sequence[int], root: int = 0) -> Tensor:
        """Distribute ``full`` from ``root`` so each worker gets its slice.

        Args:
            full: (n, ...) tensor, only read on ``root``
            counts: Number of items owned by each worker
            displacements: Start index of each worker's slice

        Returns:
            (counts[rank], ...) tensor
        """
        pass

    @abstractmethod
    def allgatherv(self, local: Tensor, counts: Sequence[int],
                   displacements: Sequence[int]) -> Tensor:
        """Concatenate every worker's slice into the full array on all workers.

        Args:
            local: (counts[rank], ...) tensor owned by this worker
            counts: Number of items owned by each worker
            displacements: Start index of each worker's slice

        Returns:
            (sum(counts), ...) tensor, identical on every worker
        """
        pass

    @abstractmethod
    def allreduce_sum(self, tensor: Tensor) -> Tensor:
        """Element-wise sum of ``tensor`` over all workers."""
        pass

    @abstractmethod
    def broadcast(self, tensor: Tensor, root: int = 0) -> Tensor:
        """Return ``root``'s ``tensor`` on every worker."""
        pass

    @abstractmethod
    def barrier(self) -> None:
        """Block until every worker has reached this point."""
        pass

    def abort(self, exc: Optional[BaseException] = None) -> None:
        """Tear the group down after a fatal error.

        The default does nothing; groups with peers that could block forever
        must override it.
        """
        pass


class ComputeKernels(ABC):
    """Capability interface for the per-element compute kernels.

    Kernels are pure functions of their arguments. Implementations may run on
    any device but must return labels as int64 CPU tensors so that they can
    be exchanged through a process group.
    """

    @property
    @abstractmethod
    def device(self) -> torch.device:
        """Device the kernels compute on."""
        pass

    @property
    def dtype(self) -> torch.dtype:
        """Floating point type of the cluster-average table."""
        return torch.float32

    @abstractmethod
    def cluster_ids(self, row_labels: Tensor, col_labels: Tensor,
                    num_col_labels: int, row_start: int,
                    row_count: int) -> Tensor:
        """Map every entry of a row slice to its co-cluster id.

        Args:
            row_labels: (R,) labels of all rows
            col_labels: (C,) labels of all columns
            num_col_labels: Number of column clusters
            row_start: First row of the slice
            row_count: Number of rows in the slice

        Returns:
            (row_count, C) int64 tensor of ``row_label * num_col_labels + col_label``
        """
        pass

    @abstractmethod
    def finalize_averages(self, sums: Tensor, counts: Tensor,
                          num_row_labels: int, num_col_labels: int) -> Tensor:
        """Turn global per-cluster sums and counts into averages.

        Returns:
            (num_row_labels, num_col_labels) tensor, 0 where a cluster is empty
        """
        pass

    @abstractmethod
    def update_labels(self, axis: int, matrix: Tensor, labels: Tensor,
                      other_labels: Tensor, averages: Tensor,
                      start: int, count: int) -> Tuple[Tensor, int, float]:
        """Recompute the best label for an owned range of rows or columns.

        Args:
            axis: 0 to update rows, 1 to update columns
            matrix: (R, C) full matrix
            labels: (count,) current labels of the owned range
            other_labels: Labels of the other axis (globally consistent)
            averages: (num_row_labels, num_col_labels) cluster averages
            start: First owned index
            count: Number of owned indices

        Returns:
            Tuple of (new labels, number of changed labels, distortion)
        """
        pass


class ConvergenceCriterion(ABC):
    """Abstract base class for convergence checking."""

    def __init__(self):
        self.history = []

    @abstractmethod
    def check(self, current_state: Dict[str, Any]) -> bool:
        """Check if the algorithm has converged.

        Args:
            current_state: Dictionary containing current algorithm state

        Returns:
            True if converged, False otherwise
        """
        pass

    def reset(self):
        """Reset convergence history."""
        self.history = []


class LabelInitializer(ABC):
    """Abstract base class for initial row/column labelings.

    The root worker draws the labels and broadcasts them, so every worker
    starts from the same labeling even without a shared seed.
    """

    @abstractmethod
    def draw(self, points: Tensor, n_clusters: int) -> Tensor:
        """Label the rows of ``points`` locally, without communication.

        Args:
            points: (n, d) tensor, one row per item to label
            n_clusters: Number of clusters

        Returns:
            (n,) int64 CPU tensor with labels in ``[0, n_clusters)``
        """
        pass

    def initialize(self, matrix: Tensor, axis: int, n_clusters: int,
                   group: Optional[ProcessGroup] = None) -> Tensor:
        """Labels for the rows (axis 0) or columns (axis 1) of ``matrix``.

        Returns:
            int64 CPU tensor, identical on every worker of ``group``
        """
        if n_clusters < 1:
            raise ValueError(f"n_clusters must be positive, got {n_clusters}")
        points = matrix if axis == 0 else matrix.t()

        if group is None or group.size == 1:
            return self.draw(points, n_clusters)

        if group.is_root:
            labels = self.draw(points, n_clusters)
        else:
            labels = torch.zeros(points.shape[0], dtype=torch.long)
        return group.broadcast(labels, root=group.root)


class ProgressReporter(ABC):
    """Receives progress events from the coordinating worker.

    Reporting is observational: implementations must not modify the state
    they are handed.
    """

    def on_start(self, n_rows: int, n_cols: int, n_workers: int) -> None:
        pass

    @abstractmethod
    def on_iteration(self, state) -> None:
        """Called once per finished iteration with its ``IterationState``."""
        pass

    @abstractmethod
    def on_finish(self, total_time: float, n_iter: int, converged: bool) -> None:
        """Called once after the last iteration."""
        pass
