"""
Cluster statistics aggregation.

Every worker accumulates, over the rows it owns, the sum and the number of
matrix entries per (row-label, column-label) pair. The partial statistics of
all workers are combined with one global sum reduction, after which the
compute kernels turn them into the cluster-average table.
"""

import torch
from torch import Tensor

from ..base.interfaces import ProcessGroup, ComputeKernels
from ..base.data_structures import Partition, ClusterAverageTable
from ..base.exceptions import CoclusterError, KernelError


class ClusterStatisticsAggregator:
    """Computes the cluster-average table of the current labels.

    Args:
        group: Process group of the workers
        kernels: Compute kernels
        row_partition: Partition of the rows across ``group``
        n_row_clusters: Number of row clusters K
        n_col_clusters: Number of column clusters L
    """

    def __init__(self, group: ProcessGroup, kernels: ComputeKernels,
                 row_partition: Partition, n_row_clusters: int,
                 n_col_clusters: int):
        if row_partition.size != group.size:
            raise ValueError(
                f"Row partition has {row_partition.size} slices for a group of {group.size}"
            )
        self.group = group
        self.kernels = kernels
        self.row_partition = row_partition
        self.n_row_clusters = n_row_clusters
        self.n_col_clusters = n_col_clusters

    @property
    def n_clusters(self) -> int:
        return self.n_row_clusters * self.n_col_clusters

    def local_statistics(self, matrix: Tensor, row_labels: Tensor,
                         col_labels: Tensor):
        """Sums (float64) and counts (int64) over this worker's rows only."""
        owned = self.row_partition.slice_of(self.group.rank)
        row_count = owned.stop - owned.start

        try:
            ids = self.kernels.cluster_ids(
                row_labels, col_labels, self.n_col_clusters, owned.start, row_count
            ).reshape(-1)
            if ids.device.type == 'mps':
                ids = ids.cpu()
            values = matrix[owned].to(ids.device, torch.float64).reshape(-1)
            sums = torch.bincount(ids, weights=values, minlength=self.n_clusters).to(torch.float64)
            counts = torch.bincount(ids, minlength=self.n_clusters)
        except CoclusterError:
            raise
        except Exception as e:
            raise KernelError(f"worker {self.group.rank}: cluster statistics failed: {e}") from e

        if sums.shape[0] != self.n_clusters:
            raise KernelError(
                f"worker {self.group.rank}: cluster id out of range "
                f"({sums.shape[0]} > {self.n_clusters} clusters)"
            )
        return sums.cpu(), counts.cpu()

    def aggregate(self, matrix: Tensor, row_labels: Tensor,
                  col_labels: Tensor) -> ClusterAverageTable:
        """Compute the global cluster-average table.

        Issues exactly one collective: sums and counts travel in a single
        float64 buffer (counts are exact up to 2**53 entries).

        Args:
            matrix: (R, C) full matrix, identical on every worker
            row_labels: (R,) globally consistent row labels
            col_labels: (C,) globally consistent column labels

        Returns:
            Cluster-average table, identical on every worker
        """
        local_sums, local_counts = self.local_statistics(matrix, row_labels, col_labels)

        packed = torch.stack([local_sums, local_counts.to(torch.float64)])
        reduced = self.group.allreduce_sum(packed)
        sums = reduced[0].clone()
        counts = reduced[1].round().to(torch.long)

        try:
            averages = self.kernels.finalize_averages(
                sums, counts, self.n_row_clusters, self.n_col_clusters
            )
        except Exception as e:
            raise KernelError(f"worker {self.group.rank}: averaging failed: {e}") from e

        return ClusterAverageTable(averages=averages, sums=sums, counts=counts)
