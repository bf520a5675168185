"""Utility functions for the co-clustering engine."""

from .convergence import (
    NoLabelChanges,
    ChangeInDistortion,
    CombinedCriterion,
    MaxIterations
)

from .metrics import (
    cocluster_sizes,
    cluster_average_table,
    average_distortion,
    contingency_matrix,
    adjusted_rand_score
)

from .validation import (
    validate_matrix,
    validate_labels,
    check_n_clusters,
    check_random_state
)

from .device import (
    get_default_device,
    parse_device,
    device_for_rank,
    synchronize_device
)

from .reporting import PrintReporter, HistoryReporter

__all__ = [
    # Convergence criteria
    'NoLabelChanges',
    'ChangeInDistortion',
    'CombinedCriterion',
    'MaxIterations',

    # Metrics
    'cocluster_sizes',
    'cluster_average_table',
    'average_distortion',
    'contingency_matrix',
    'adjusted_rand_score',

    # Validation
    'validate_matrix',
    'validate_labels',
    'check_n_clusters',
    'check_random_state',

    # Device management
    'get_default_device',
    'parse_device',
    'device_for_rank',
    'synchronize_device',

    # Reporting
    'PrintReporter',
    'HistoryReporter'
]
