"""Visualization utilities for co-clustering results."""

from .plot_coclusters import (
    plot_cocluster_matrix,
    plot_distortion_history
)

__all__ = [
    'plot_cocluster_matrix',
    'plot_distortion_history'
]
