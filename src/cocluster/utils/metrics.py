"""
Evaluation metrics for co-clustering results.

Includes:
- Distortion of a labeling against a cluster-average table
- Co-cluster sizes
- Adjusted Rand Index for comparing a labeling with ground truth
"""

import torch
from torch import Tensor


def cocluster_sizes(row_labels: Tensor, col_labels: Tensor,
                    n_row_clusters: int, n_col_clusters: int) -> Tensor:
    """Number of matrix entries in every co-cluster.

    Returns:
        (n_row_clusters, n_col_clusters) int64 tensor
    """
    row_sizes = torch.bincount(row_labels.long(), minlength=n_row_clusters)
    col_sizes = torch.bincount(col_labels.long(), minlength=n_col_clusters)
    return torch.outer(row_sizes, col_sizes)


def cluster_average_table(matrix: Tensor, row_labels: Tensor, col_labels: Tensor,
                          n_row_clusters: int, n_col_clusters: int) -> Tensor:
    """Single-process cluster averages, 0 for empty co-clusters.

    Useful as a serial cross-check of the distributed aggregation.
    """
    ids = (row_labels.long().unsqueeze(1) * n_col_clusters + col_labels.long().unsqueeze(0))
    n_clusters = n_row_clusters * n_col_clusters
    sums = torch.bincount(ids.reshape(-1), weights=matrix.double().reshape(-1),
                          minlength=n_clusters)
    counts = torch.bincount(ids.reshape(-1), minlength=n_clusters).double()
    averages = torch.where(counts > 0, sums / counts.clamp(min=1.0), torch.zeros_like(sums))
    return averages.reshape(n_row_clusters, n_col_clusters)


def average_distortion(matrix: Tensor, row_labels: Tensor, col_labels: Tensor,
                       averages: Tensor) -> float:
    """Mean squared deviation of every entry from its co-cluster average.

    Args:
        matrix: (R, C) data
        row_labels: (R,) row labels
        col_labels: (C,) column labels
        averages: (K, L) cluster-average table

    Returns:
        Average distortion per entry
    """
    prediction = averages.double()[row_labels.long()][:, col_labels.long()]
    diff = matrix.double() - prediction
    return (diff * diff).mean().item()


def contingency_matrix(labels_true: Tensor, labels_pred: Tensor) -> Tensor:
    """Build contingency matrix for comparing clusterings.

    Returns:
        Matrix C where C[i,j] is the number of samples with true label i and
        predicted label j
    """
    labels_true = labels_true.long()
    labels_pred = labels_pred.long()
    n_true = labels_true.max().item() + 1
    n_pred = labels_pred.max().item() + 1

    flat = torch.bincount(labels_true * n_pred + labels_pred, minlength=n_true * n_pred)
    return flat.reshape(n_true, n_pred)


def adjusted_rand_score(labels_true: Tensor, labels_pred: Tensor) -> float:
    """Compute Adjusted Rand Index.

    ARI is 1.0 for a perfect match up to a relabeling, about 0.0 for a random
    labeling.
    """
    # zero or one item: any two labelings agree
    if labels_true.numel() < 2:
        return 1.0

    contingency = contingency_matrix(labels_true, labels_pred).double()

    row_sum = contingency.sum(dim=1)
    col_sum = contingency.sum(dim=0)
    n = contingency.sum()

    sum_comb = torch.sum(contingency * (contingency - 1)) / 2
    sum_comb_rows = torch.sum(row_sum * (row_sum - 1)) / 2
    sum_comb_cols = torch.sum(col_sum * (col_sum - 1)) / 2

    expected_index = sum_comb_rows * sum_comb_cols / (n * (n - 1) / 2)
    max_index = (sum_comb_rows + sum_comb_cols) / 2

    if max_index - expected_index == 0:
        return 1.0

    ari = (sum_comb - expected_index) / (max_index - expected_index)
    return ari.item()
