"""
Vectorized PyTorch kernels.

Runs on any torch device; on CUDA this is the accelerated variant of the
compute kernels. Costs are accumulated in float64 regardless of the matrix
type (float32 on MPS, which has no float64).
"""

from typing import Optional, Tuple, Union
import torch
from torch import Tensor

from ..base.interfaces import ComputeKernels
from ..base.data_structures import ROWS, COLUMNS
from ..utils.device import parse_device


def select_labels(costs: Tensor, current: Tensor) -> Tuple[Tensor, Tensor]:
    """Pick the cheapest label per index, keeping the current one on ties.

    Args:
        costs: (n, K) cost of every candidate label
        current: (n,) current labels

    Returns:
        Tuple of (new labels, cost of the chosen label)
    """
    best_cost, best = costs.min(dim=1)
    current_cost = costs.gather(1, current.unsqueeze(1)).squeeze(1)
    keep = current_cost <= best_cost
    return torch.where(keep, current, best), torch.where(keep, current_cost, best_cost)


class TorchKernels(ComputeKernels):
    """Compute kernels implemented with torch tensor operations.

    Args:
        device: Device to compute on (None for best available)
        dtype: Type of the cluster-average table
        chunk_size: Maximum number of rows/columns whose (chunk, K, n)
            difference tensor is materialized at once
    """

    def __init__(self, device: Optional[Union[str, torch.device]] = None,
                 dtype: torch.dtype = torch.float32,
                 chunk_size: int = 1024):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._device = parse_device(device)
        self._dtype = dtype
        # MPS has no float64
        self._cost_dtype = torch.float32 if self._device.type == 'mps' else torch.float64
        self.chunk_size = chunk_size

    @property
    def device(self) -> torch.device:
        return self._device

    @property
    def dtype(self) -> torch.dtype:
        return self._dtype

    def __repr__(self) -> str:
        return f"TorchKernels(device={self._device}, dtype={self._dtype})"

    def cluster_ids(self, row_labels: Tensor, col_labels: Tensor,
                    num_col_labels: int, row_start: int,
                    row_count: int) -> Tensor:
        rows = row_labels[row_start:row_start + row_count].to(self._device, torch.long)
        cols = col_labels.to(self._device, torch.long)
        return rows.unsqueeze(1) * num_col_labels + cols.unsqueeze(0)

    def finalize_averages(self, sums: Tensor, counts: Tensor,
                          num_row_labels: int, num_col_labels: int) -> Tensor:
        sums = sums.detach().cpu().to(torch.float64)
        counts = counts.detach().cpu().to(torch.float64)
        averages = torch.where(
            counts > 0,
            sums / counts.clamp(min=1.0),
            torch.zeros_like(sums)
        )
        return averages.reshape(num_row_labels, num_col_labels).to(self._device, self._dtype)

    def update_labels(self, axis: int, matrix: Tensor, labels: Tensor,
                      other_labels: Tensor, averages: Tensor,
                      start: int, count: int) -> Tuple[Tensor, int, float]:
        if count == 0:
            return labels.new_empty(0, dtype=torch.long).cpu(), 0, 0.0

        matrix = matrix.to(self._device)
        other = other_labels.to(self._device, torch.long)
        averages = averages.to(self._device, self._cost_dtype)

        if axis == ROWS:
            block = matrix[start:start + count, :]
            prototypes = averages[:, other]
        elif axis == COLUMNS:
            block = matrix[:, start:start + count].t()
            prototypes = averages[other, :].t()
        else:
            raise ValueError(f"axis must be {ROWS} or {COLUMNS}, got {axis}")

        current = labels.to(self._device, torch.long)
        new_labels = torch.empty_like(current)
        chosen = torch.empty(count, dtype=self._cost_dtype, device=self._device)

        for lo in range(0, count, self.chunk_size):
            hi = min(lo + self.chunk_size, count)
            diff = block[lo:hi].to(self._cost_dtype).unsqueeze(1) - prototypes.unsqueeze(0)
            costs = (diff * diff).sum(dim=2)
            new_labels[lo:hi], chosen[lo:hi] = select_labels(costs, current[lo:hi])

        num_changed = int((new_labels != current).sum().item())
        distortion = float(chosen.sum().item())
        return new_labels.cpu(), num_changed, distortion
