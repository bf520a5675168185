"""
Co-clustering visualization utilities.

Shows a matrix with its rows and columns reordered by label, so co-clusters
appear as contiguous blocks, and the distortion over the iterations.
"""

from typing import Optional, List, Union
from torch import Tensor
import matplotlib.pyplot as plt
import numpy as np

from ..base.data_structures import IterationState, history_to_lists


def _to_numpy(x: Union[Tensor, np.ndarray]) -> np.ndarray:
    if isinstance(x, Tensor):
        return x.detach().cpu().numpy()
    return np.asarray(x)


def plot_cocluster_matrix(matrix: Union[Tensor, np.ndarray],
                          row_labels: Union[Tensor, np.ndarray],
                          col_labels: Union[Tensor, np.ndarray],
                          ax: Optional[plt.Axes] = None,
                          cmap: str = 'viridis',
                          show_boundaries: bool = True,
                          boundary_color: str = 'white',
                          title: Optional[str] = None) -> plt.Axes:
    """Plot a matrix with rows and columns grouped by cluster.

    Args:
        matrix: (R, C) data
        row_labels: (R,) row labels
        col_labels: (C,) column labels
        ax: Matplotlib axes (created if None)
        cmap: Colormap name
        show_boundaries: Draw lines between co-cluster blocks
        boundary_color: Color of the boundary lines
        title: Plot title

    Returns:
        Matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    matrix_np = _to_numpy(matrix)
    rows_np = _to_numpy(row_labels)
    cols_np = _to_numpy(col_labels)

    # Stable sorts keep the original order inside each cluster
    row_order = np.argsort(rows_np, kind='stable')
    col_order = np.argsort(cols_np, kind='stable')

    image = ax.imshow(matrix_np[row_order][:, col_order],
                      aspect='auto', interpolation='nearest', cmap=cmap)
    plt.colorbar(image, ax=ax)

    if show_boundaries:
        row_bounds = np.flatnonzero(np.diff(rows_np[row_order])) + 0.5
        col_bounds = np.flatnonzero(np.diff(cols_np[col_order])) + 0.5
        for y in row_bounds:
            ax.axhline(y, color=boundary_color, linewidth=1)
        for x in col_bounds:
            ax.axvline(x, color=boundary_color, linewidth=1)

    ax.set_xlabel('Columns (by cluster)')
    ax.set_ylabel('Rows (by cluster)')

    if title:
        ax.set_title(title)

    return ax


def plot_distortion_history(history: List[IterationState],
                            ax: Optional[plt.Axes] = None,
                            show_updates: bool = True,
                            title: Optional[str] = None) -> plt.Axes:
    """Plot average distortion (and label changes) per iteration.

    Args:
        history: Iteration states of a run
        ax: Matplotlib axes (created if None)
        show_updates: Also plot the number of changed labels on a twin axis
        title: Plot title

    Returns:
        Matplotlib axes of the distortion curve
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    columns = history_to_lists(history)
    iterations = columns['iteration']

    ax.plot(iterations, columns['average_distortion'], marker='o', color='tab:blue',
            label='average distortion')
    ax.set_xlabel('Iteration')
    ax.set_ylabel('Average distortion')

    if show_updates:
        twin = ax.twinx()
        twin.bar(iterations, columns['num_updated'],
                 alpha=0.3, color='tab:orange', label='labels updated')
        twin.set_ylabel('Labels updated')

    if title:
        ax.set_title(title)

    return ax
