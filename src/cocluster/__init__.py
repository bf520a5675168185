"""
cocluster: distributed co-clustering of dense matrices.

Rows and columns of a matrix are partitioned into a fixed number of row and
column clusters by alternately recomputing the mean of every co-cluster and
re-assigning each row, then each column, to the cluster that fits it best.
The work is split across the workers of a process group (threads,
torch.distributed or MPI), each owning a contiguous slice of rows and
columns, with the per-element work done by pluggable compute kernels.

Example usage:
    >>> import torch
    >>> from cocluster import DistributedCoclustering
    >>>
    >>> X = torch.rand(200, 50)
    >>> model = DistributedCoclustering(n_row_clusters=4, n_col_clusters=3,
    ...                                 random_state=0, verbose=1)
    >>> model.fit(X)
    >>> model.row_labels_, model.col_labels_

    Several workers in one process:
    >>> from cocluster import run_spmd
    >>> def worker(group):
    ...     model = DistributedCoclustering(4, 3, group=group, random_state=0)
    ...     return model.fit_predict(X)
    >>> results = run_spmd(worker, 4)
"""

__version__ = '0.1.0'

from .algorithms.coclustering import DistributedCoclustering, cocluster
from .aggregation import ClusterStatisticsAggregator
from .updates import LabelUpdateCoordinator
from .distributed import (
    plan_partition,
    LocalGroup,
    ThreadGroup,
    run_spmd,
    init_process_group
)
from .kernels import NumpyKernels, TorchKernels, get_kernels
from .io import load_matrix, read_labels, write_labels

from .base import (
    ROWS,
    COLUMNS,
    Partition,
    ClusterAverageTable,
    IterationState,
    ProcessGroup,
    ComputeKernels,
    CoclusterError,
    CollectiveError,
    KernelError
)

__all__ = [
    # Algorithms
    'DistributedCoclustering',
    'cocluster',

    # Engine components
    'ClusterStatisticsAggregator',
    'LabelUpdateCoordinator',
    'plan_partition',

    # Process groups
    'ProcessGroup',
    'LocalGroup',
    'ThreadGroup',
    'run_spmd',
    'init_process_group',

    # Kernels
    'ComputeKernels',
    'NumpyKernels',
    'TorchKernels',
    'get_kernels',

    # I/O
    'load_matrix',
    'read_labels',
    'write_labels',

    # Core data structures
    'ROWS',
    'COLUMNS',
    'Partition',
    'ClusterAverageTable',
    'IterationState',

    # Errors
    'CoclusterError',
    'CollectiveError',
    'KernelError',

    # Version
    '__version__'
]
