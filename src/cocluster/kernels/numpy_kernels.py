"""
CPU reference kernels written with NumPy.

Straightforward loops over candidate labels; slower than the torch kernels
but easy to check by hand. Used to cross-validate accelerated kernels.
"""

from typing import Tuple
import numpy as np
import torch
from torch import Tensor

from ..base.interfaces import ComputeKernels
from ..base.data_structures import ROWS, COLUMNS


def _numpy(tensor: Tensor) -> np.ndarray:
    return tensor.detach().cpu().numpy()


class NumpyKernels(ComputeKernels):
    """Reference implementation of the compute kernels."""

    def __init__(self, dtype: torch.dtype = torch.float32):
        self._dtype = dtype

    @property
    def device(self) -> torch.device:
        return torch.device('cpu')

    @property
    def dtype(self) -> torch.dtype:
        return self._dtype

    def __repr__(self) -> str:
        return f"NumpyKernels(dtype={self._dtype})"

    def cluster_ids(self, row_labels: Tensor, col_labels: Tensor,
                    num_col_labels: int, row_start: int,
                    row_count: int) -> Tensor:
        rows = _numpy(row_labels)[row_start:row_start + row_count].astype(np.int64)
        cols = _numpy(col_labels).astype(np.int64)
        ids = rows[:, np.newaxis] * num_col_labels + cols[np.newaxis, :]
        return torch.from_numpy(ids)

    def finalize_averages(self, sums: Tensor, counts: Tensor,
                          num_row_labels: int, num_col_labels: int) -> Tensor:
        sums = _numpy(sums).astype(np.float64)
        counts = _numpy(counts).astype(np.float64)
        averages = np.zeros_like(sums)
        np.divide(sums, counts, out=averages, where=counts > 0)
        averages = averages.reshape(num_row_labels, num_col_labels)
        return torch.from_numpy(averages).to(self._dtype)

    def update_labels(self, axis: int, matrix: Tensor, labels: Tensor,
                      other_labels: Tensor, averages: Tensor,
                      start: int, count: int) -> Tuple[Tensor, int, float]:
        data = _numpy(matrix)
        other = _numpy(other_labels).astype(np.int64)
        avg = _numpy(averages).astype(np.float64)
        current = _numpy(labels).astype(np.int64)

        if axis == ROWS:
            block = data[start:start + count, :].astype(np.float64)
            prototypes = avg[:, other]
        elif axis == COLUMNS:
            block = data[:, start:start + count].T.astype(np.float64)
            prototypes = avg[other, :].T
        else:
            raise ValueError(f"axis must be {ROWS} or {COLUMNS}, got {axis}")

        n_candidates = prototypes.shape[0]
        costs = np.empty((count, n_candidates), dtype=np.float64)
        for k in range(n_candidates):
            diff = block - prototypes[k]
            costs[:, k] = np.einsum('ij,ij->i', diff, diff)

        new_labels = current.copy()
        distortion = 0.0
        num_changed = 0
        for i in range(count):
            best = current[i]
            for k in range(n_candidates):
                if costs[i, k] < costs[i, best]:
                    best = k
            if best != current[i]:
                num_changed += 1
            new_labels[i] = best
            distortion += costs[i, best]

        return torch.from_numpy(new_labels), num_changed, float(distortion)
