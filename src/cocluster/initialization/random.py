"""
Random initialization of row and column labels.

Ignores the matrix values; mostly useful as a baseline and for tests that
need a balanced starting point.
"""

from typing import Optional, Union
import torch
from torch import Tensor

from ..base.interfaces import LabelInitializer
from ..utils.validation import check_random_state


class RandomLabelInit(LabelInitializer):
    """Balanced random labeling.

    Index ``i`` of a random permutation gets label ``i % n_clusters``, so all
    labels are used whenever the axis has at least ``n_clusters`` items and
    cluster sizes differ by at most one.
    """

    def __init__(self, random_state: Optional[Union[int, torch.Generator]] = None):
        self.random_state = random_state
        self._generator = check_random_state(random_state)

    def draw(self, points: Tensor, n_clusters: int) -> Tensor:
        n_items = points.shape[0]
        permutation = torch.randperm(n_items, generator=self._generator)
        labels = torch.empty(n_items, dtype=torch.long)
        labels[permutation] = torch.arange(n_items, dtype=torch.long) % n_clusters
        return labels
