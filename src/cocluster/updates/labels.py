"""
Label update coordination for one axis.

A round trip through the process group: the full label array is scattered
so each worker holds the labels it owns, the kernels recompute those labels
locally, and the results are gathered back into a complete, identical copy
on every worker together with the global number of changes and distortion.
"""

import torch
from torch import Tensor

from ..base.interfaces import ProcessGroup, ComputeKernels
from ..base.data_structures import (
    Partition, ClusterAverageTable, AxisUpdate, ROWS, COLUMNS, AXIS_NAMES
)
from ..base.exceptions import KernelError


class LabelUpdateCoordinator:
    """Updates the labels of one axis (rows or columns) across all workers.

    Each worker only ever mutates the slice of the labels it owns; the
    gathered array replaces the caller's labels in place afterwards.

    Args:
        group: Process group of the workers
        kernels: Compute kernels
        axis: ``ROWS`` or ``COLUMNS``
        partition: Partition of that axis across ``group``
    """

    def __init__(self, group: ProcessGroup, kernels: ComputeKernels,
                 axis: int, partition: Partition):
        if axis not in (ROWS, COLUMNS):
            raise ValueError(f"axis must be {ROWS} or {COLUMNS}, got {axis}")
        if partition.size != group.size:
            raise ValueError(
                f"Partition has {partition.size} slices for a group of {group.size}"
            )
        self.group = group
        self.kernels = kernels
        self.axis = axis
        self.partition = partition

    @property
    def axis_name(self) -> str:
        return AXIS_NAMES[self.axis]

    def distribute(self, labels: Tensor) -> Tensor:
        """Scatter ``labels`` so this worker receives the slice it owns."""
        return self.group.scatterv(
            labels, self.partition.counts, self.partition.displacements,
            root=self.group.root
        )

    def recompute(self, matrix: Tensor, local_labels: Tensor,
                  other_labels: Tensor, table: ClusterAverageTable):
        """Run the update kernel on the owned slice."""
        rank = self.group.rank
        try:
            new_labels, num_changed, distortion = self.kernels.update_labels(
                self.axis,
                matrix,
                local_labels,
                other_labels,
                table.averages,
                self.partition.displacements[rank],
                self.partition.counts[rank]
            )
        except Exception as e:
            raise KernelError(
                f"worker {rank}: updating {self.axis_name} failed: {e}"
            ) from e

        if new_labels.shape[0] != self.partition.counts[rank]:
            raise KernelError(
                f"worker {rank}: kernel returned {new_labels.shape[0]} {self.axis_name} "
                f"labels for a slice of {self.partition.counts[rank]}"
            )
        return new_labels.to(torch.long).cpu(), num_changed, distortion

    def reconcile(self, labels: Tensor, local_labels: Tensor,
                  num_changed: int, distortion: float) -> AxisUpdate:
        """Gather all slices into ``labels`` and sum the local totals."""
        full = self.group.allgatherv(
            local_labels, self.partition.counts, self.partition.displacements
        )
        labels.copy_(full)

        local_totals = torch.tensor([float(num_changed), distortion], dtype=torch.float64)
        totals = self.group.allreduce_sum(local_totals)
        return AxisUpdate(num_changed=int(round(totals[0].item())),
                          distortion=totals[1].item())

    def update(self, matrix: Tensor, labels: Tensor, other_labels: Tensor,
               table: ClusterAverageTable) -> AxisUpdate:
        """Distribute, recompute and reconcile the labels of this axis.

        Args:
            matrix: (R, C) full matrix
            labels: Labels of this axis; replaced in place by the new labels
            other_labels: Labels of the other axis, globally consistent
            table: Cluster averages of the current iteration

        Returns:
            Global number of changed labels and total distortion
        """
        if labels.shape[0] != self.partition.n:
            raise ValueError(
                f"Expected {self.partition.n} {self.axis_name} labels, got {labels.shape[0]}"
            )
        local_labels = self.distribute(labels)
        new_labels, num_changed, distortion = self.recompute(
            matrix, local_labels, other_labels, table
        )
        return self.reconcile(labels, new_labels, num_changed, distortion)
