"""
Distributed co-clustering.

Alternates, until no label changes or the iteration cap is hit, between
computing the cluster-average table of the current labels and re-assigning
first every row and then every column to its cheapest cluster. All workers of
the process group run the same loop in lock-step.
"""

from typing import Optional, Dict, Any, List, Tuple, Union
import time
import warnings
import numpy as np
import torch
from torch import Tensor

from ..base.interfaces import (
    ProcessGroup, ComputeKernels, ConvergenceCriterion, LabelInitializer, ProgressReporter
)
from ..base.data_structures import (
    ROWS, COLUMNS, ClusterAverageTable, IterationState
)
from ..distributed.groups import LocalGroup
from ..distributed.partition import plan_partition
from ..aggregation.statistics import ClusterStatisticsAggregator
from ..updates.labels import LabelUpdateCoordinator
from ..kernels.torch_kernels import TorchKernels
from ..initialization import get_initializer
from ..utils.convergence import NoLabelChanges
from ..utils.device import device_for_rank, synchronize_device
from ..utils.reporting import PrintReporter
from ..utils.validation import validate_matrix, validate_labels, check_n_clusters


class DistributedCoclustering:
    """Co-clustering of a dense matrix across the workers of a process group.

    Every worker constructs the estimator with its own process group and
    calls ``fit`` with the same matrix. Labels are identical on every worker
    after each synchronization point; each worker only recomputes the rows
    and columns it owns.

    Parameters
    ----------
    n_row_clusters : int
        Number of row clusters
    n_col_clusters : int
        Number of column clusters
    max_iter : int, default=25
        Maximum number of iterations
    kernels : ComputeKernels, optional
        Compute kernels; torch kernels on ``device`` when None
    group : ProcessGroup, optional
        Process group of this worker; single-process when None
    device : str or torch.device, optional
        Device for the default kernels (one GPU per worker when several
        are visible)
    convergence_criterion : ConvergenceCriterion, optional
        Stopping rule; stops when no label changes when None. Must only
        depend on the state it is handed so all workers agree.
    reporter : ProgressReporter, optional
        Receives progress on the root worker; printing when ``verbose``
    verbose : int, default=0
        Verbosity level (0=silent, 1=progress)
    init : {'k-means++', 'random'}, default='k-means++'
        Initial labels when none are given:
        - 'k-means++': nearest of K-means++ seed rows (columns)
        - 'random': balanced random labels
    random_state : int, optional
        Seed for the initial labels

    Attributes
    ----------
    row_labels_ : Tensor of shape (n_rows,)
    col_labels_ : Tensor of shape (n_cols,)
    cluster_averages_ : ClusterAverageTable
        Averages of the final labels
    n_iter_ : int
        Number of iterations run
    converged_ : bool
        Whether the stopping rule fired before the iteration cap
    history_ : list of IterationState
    fit_time_ : float
        Wall-clock seconds spent in the refinement loop
    """

    def __init__(self,
                 n_row_clusters: int,
                 n_col_clusters: int,
                 max_iter: int = 25,
                 kernels: Optional[ComputeKernels] = None,
                 group: Optional[ProcessGroup] = None,
                 device: Optional[Union[str, torch.device]] = None,
                 convergence_criterion: Optional[ConvergenceCriterion] = None,
                 reporter: Optional[ProgressReporter] = None,
                 verbose: int = 0,
                 init: str = 'k-means++',
                 random_state: Optional[int] = None):
        self.n_row_clusters = n_row_clusters
        self.n_col_clusters = n_col_clusters
        self.max_iter = max_iter
        self.kernels = kernels
        self.group = group if group is not None else LocalGroup()
        self.device = device
        self.convergence_criterion = convergence_criterion
        self.reporter = reporter
        self.verbose = verbose
        self.init = init
        self.random_state = random_state

        self.fitted_ = False
        self.n_iter_ = 0
        self.converged_ = False
        self.history_: List[IterationState] = []
        self.fit_time_ = 0.0
        self.row_labels_: Optional[Tensor] = None
        self.col_labels_: Optional[Tensor] = None
        self.cluster_averages_: Optional[ClusterAverageTable] = None

    def _resolve_kernels(self) -> ComputeKernels:
        if self.kernels is None:
            self.kernels = TorchKernels(device=device_for_rank(self.device, self.group.rank))
        return self.kernels

    def _resolve_reporter(self) -> Optional[ProgressReporter]:
        if not self.group.is_root:
            return None
        if self.reporter is not None:
            return self.reporter
        if self.verbose:
            return PrintReporter()
        return None

    def _resolve_criterion(self) -> ConvergenceCriterion:
        if self.convergence_criterion is None:
            self.convergence_criterion = NoLabelChanges()
        return self.convergence_criterion

    def _initial_labels(self, matrix: Tensor, labels, axis: int, n_clusters: int,
                        initializer: LabelInitializer, name: str) -> Tensor:
        n_items = matrix.shape[axis]
        if labels is None:
            return initializer.initialize(matrix, axis, n_clusters, self.group)
        return validate_labels(labels, n_items, n_clusters, name=name)

    def fit(self, X: Union[Tensor, np.ndarray],
            row_labels: Optional[Union[Tensor, np.ndarray]] = None,
            col_labels: Optional[Union[Tensor, np.ndarray]] = None) -> 'DistributedCoclustering':
        """Co-cluster ``X``.

        Parameters
        ----------
        X : array-like of shape (n_rows, n_cols)
            Matrix, identical on every worker
        row_labels : array-like of shape (n_rows,), optional
            Initial row labels; drawn according to ``init`` when None
        col_labels : array-like of shape (n_cols,), optional
            Initial column labels; drawn according to ``init`` when None

        Returns
        -------
        self : DistributedCoclustering
        """
        kernels = self._resolve_kernels()
        matrix = validate_matrix(X, device=kernels.device)
        n_rows, n_cols = matrix.shape

        check_n_clusters(self.n_row_clusters, n_rows, name='n_row_clusters')
        check_n_clusters(self.n_col_clusters, n_cols, name='n_col_clusters')

        initializer = get_initializer(self.init, self.random_state)
        rows = self._initial_labels(matrix, row_labels, ROWS, self.n_row_clusters,
                                    initializer, 'row_labels')
        cols = self._initial_labels(matrix, col_labels, COLUMNS, self.n_col_clusters,
                                    initializer, 'col_labels')

        self.run(matrix, rows, cols, self.max_iter)

        self.row_labels_ = rows
        self.col_labels_ = cols
        self.fitted_ = True
        return self

    def fit_predict(self, X: Union[Tensor, np.ndarray],
                    row_labels: Optional[Union[Tensor, np.ndarray]] = None,
                    col_labels: Optional[Union[Tensor, np.ndarray]] = None) -> Tuple[Tensor, Tensor]:
        """Fit and return the final ``(row_labels, col_labels)``."""
        self.fit(X, row_labels, col_labels)
        return self.row_labels_, self.col_labels_

    def iterate(self, matrix: Tensor, row_labels: Tensor, col_labels: Tensor,
                aggregator: ClusterStatisticsAggregator,
                row_updater: LabelUpdateCoordinator,
                col_updater: LabelUpdateCoordinator,
                iteration: int) -> IterationState:
        """One aggregate / update rows / barrier / update columns cycle."""
        table = aggregator.aggregate(matrix, row_labels, col_labels)

        rows = row_updater.update(matrix, row_labels, col_labels, table)

        # The column kernel reads the new row labels of every worker.
        self.group.barrier()

        cols = col_updater.update(matrix, col_labels, row_labels, table)

        return IterationState(
            iteration=iteration,
            num_row_updates=rows.num_changed,
            num_col_updates=cols.num_changed,
            row_distortion=rows.distortion,
            col_distortion=cols.distortion,
            n_elements=matrix.shape[0] * matrix.shape[1]
        )

    def run(self, matrix: Tensor, row_labels: Tensor, col_labels: Tensor,
            max_iterations: Optional[int] = None) -> Tuple[Tensor, Tensor]:
        """Refine ``row_labels`` and ``col_labels`` in place.

        Args:
            matrix: (R, C) matrix, identical on every worker
            row_labels: (R,) int64 CPU tensor, identical on every worker
            col_labels: (C,) int64 CPU tensor, identical on every worker
            max_iterations: Iteration cap (``max_iter`` when None)

        Returns:
            The same ``(row_labels, col_labels)`` tensors
        """
        if max_iterations is None:
            max_iterations = self.max_iter
        if max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")

        for name, labels in (('row_labels', row_labels), ('col_labels', col_labels)):
            if not isinstance(labels, Tensor) or labels.dtype != torch.long or labels.is_cuda:
                raise TypeError(f"{name} must be an int64 CPU tensor to be updated in place")

        kernels = self._resolve_kernels()
        matrix = validate_matrix(matrix, device=kernels.device)
        n_rows, n_cols = matrix.shape
        validate_labels(row_labels, n_rows, self.n_row_clusters, name='row_labels')
        validate_labels(col_labels, n_cols, self.n_col_clusters, name='col_labels')

        group = self.group
        row_partition = plan_partition(n_rows, group.size)
        col_partition = plan_partition(n_cols, group.size)

        aggregator = ClusterStatisticsAggregator(
            group, kernels, row_partition, self.n_row_clusters, self.n_col_clusters
        )
        row_updater = LabelUpdateCoordinator(group, kernels, ROWS, row_partition)
        col_updater = LabelUpdateCoordinator(group, kernels, COLUMNS, col_partition)

        criterion = self._resolve_criterion()
        criterion.reset()
        reporter = self._resolve_reporter()

        self.history_ = []
        self.n_iter_ = 0
        self.converged_ = False

        if reporter is not None:
            reporter.on_start(n_rows, n_cols, group.size)

        start_time = time.time()

        for iteration in range(1, max_iterations + 1):
            iter_start_time = time.time()

            state = self.iterate(matrix, row_labels, col_labels,
                                 aggregator, row_updater, col_updater, iteration)

            synchronize_device(kernels.device)
            state.elapsed = time.time() - iter_start_time
            self.history_.append(state)
            self.n_iter_ = iteration

            if reporter is not None:
                reporter.on_iteration(state)

            if criterion.check(self._criterion_state(state)):
                self.converged_ = True
                break

        self.fit_time_ = time.time() - start_time

        self.cluster_averages_ = aggregator.aggregate(
            matrix, row_labels, col_labels).to(torch.device('cpu'))

        if reporter is not None:
            reporter.on_finish(self.fit_time_, self.n_iter_, self.converged_)

        if not self.converged_ and self.verbose and group.is_root:
            warnings.warn(f"Failed to converge after {max_iterations} iterations")

        return row_labels, col_labels

    @staticmethod
    def _criterion_state(state: IterationState) -> Dict[str, Any]:
        return {
            'iteration': state.iteration,
            'num_updated': state.num_updated,
            'distortion': state.distortion,
            'average_distortion': state.average_distortion
        }

    @property
    def distortion_(self) -> float:
        """Average distortion of the last iteration."""
        if not self.history_:
            raise RuntimeError("Model must be fitted first")
        return self.history_[-1].average_distortion

    def get_params(self, deep: bool = True) -> Dict[str, Any]:
        """Get parameters (sklearn compatibility)."""
        return {
            'n_row_clusters': self.n_row_clusters,
            'n_col_clusters': self.n_col_clusters,
            'max_iter': self.max_iter,
            'kernels': self.kernels,
            'group': self.group,
            'device': self.device,
            'convergence_criterion': self.convergence_criterion,
            'reporter': self.reporter,
            'verbose': self.verbose,
            'init': self.init,
            'random_state': self.random_state
        }

    def set_params(self, **params) -> 'DistributedCoclustering':
        """Set parameters (sklearn compatibility)."""
        valid = self.get_params()
        for key, value in params.items():
            if key not in valid:
                raise ValueError(f"Invalid parameter {key} for {type(self).__name__}")
            setattr(self, key, value)
        return self


def cocluster(X: Union[Tensor, np.ndarray],
              n_row_clusters: int,
              n_col_clusters: int,
              row_labels: Optional[Union[Tensor, np.ndarray]] = None,
              col_labels: Optional[Union[Tensor, np.ndarray]] = None,
              **kwargs) -> Tuple[Tensor, Tensor]:
    """Functional interface: co-cluster ``X`` and return the final labels.

    Keyword arguments are passed to ``DistributedCoclustering``.
    """
    model = DistributedCoclustering(n_row_clusters, n_col_clusters, **kwargs)
    return model.fit_predict(X, row_labels, col_labels)
