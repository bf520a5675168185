"""Base classes and interfaces for the co-clustering engine."""

from .interfaces import (
    ProcessGroup,
    ComputeKernels,
    ConvergenceCriterion,
    LabelInitializer,
    ProgressReporter
)

from .data_structures import (
    ROWS,
    COLUMNS,
    AXIS_NAMES,
    Partition,
    ClusterAverageTable,
    AxisUpdate,
    IterationState,
    history_to_lists
)

from .exceptions import CoclusterError, CollectiveError, KernelError

__all__ = [
    # Interfaces
    'ProcessGroup',
    'ComputeKernels',
    'ConvergenceCriterion',
    'LabelInitializer',
    'ProgressReporter',

    # Data structures
    'ROWS',
    'COLUMNS',
    'AXIS_NAMES',
    'Partition',
    'ClusterAverageTable',
    'AxisUpdate',
    'IterationState',
    'history_to_lists',

    # Errors
    'CoclusterError',
    'CollectiveError',
    'KernelError'
]
