"""
K-means++ initialization of row and column labels.

Picks ``n_clusters`` rows (or columns) of the matrix as seeds with the
K-means++ rule, which favours seeds far apart from each other, and labels
every row (column) with its nearest seed. Unlike a random labeling, every
initial cluster is built around actual structure in the data, so clearly
separated blocks are already apart after the first update.
"""

from typing import Optional, Union
import math
import torch
from torch import Tensor

from ..base.interfaces import LabelInitializer
from ..utils.validation import check_random_state


class KMeansPlusPlusLabelInit(LabelInitializer):
    """Nearest-seed labeling with K-means++ seed selection.

    Algorithm:
    1. Choose the first seed uniformly at random
    2. For each remaining seed:
       - Compute the squared distance of every item to its nearest seed
       - Sample candidates with probability proportional to that distance
         and keep the one that lowers the total distance most
    3. Label every item with its nearest seed; each seed keeps its own label

    Args:
        random_state: Seed or generator for the sampling
        n_local_trials: Candidates tried per seed (2 + log(k) when None)
    """

    def __init__(self, random_state: Optional[Union[int, torch.Generator]] = None,
                 n_local_trials: Optional[int] = None):
        self.random_state = random_state
        self.n_local_trials = n_local_trials
        self._generator = check_random_state(random_state)

    def seed_indices(self, points: Tensor, n_clusters: int) -> Tensor:
        """Indices of the ``n_clusters`` distinct items chosen as seeds."""
        n_items = points.shape[0]
        if n_clusters > n_items:
            raise ValueError(f"Cannot create {n_clusters} clusters from {n_items} items")

        if self.n_local_trials is None:
            n_local_trials = 2 + int(math.log(n_clusters))
        else:
            n_local_trials = self.n_local_trials

        first = int(torch.randint(n_items, (1,), generator=self._generator).item())
        seeds = [first]
        distances = ((points - points[first]) ** 2).sum(dim=1)

        for _ in range(1, n_clusters):
            chosen = torch.zeros(n_items, dtype=torch.bool)
            chosen[seeds] = True
            weights = distances.masked_fill(chosen, 0.0)

            if weights.sum() <= 0:
                # Remaining items all coincide with a seed
                remaining = torch.nonzero(~chosen).squeeze(1)
                pick = torch.randint(remaining.shape[0], (1,), generator=self._generator)
                best = int(remaining[pick].item())
            else:
                candidates = torch.multinomial(weights, n_local_trials, replacement=True,
                                               generator=self._generator)
                best, best_potential = None, math.inf
                for idx in candidates.tolist():
                    candidate_distances = ((points - points[idx]) ** 2).sum(dim=1)
                    potential = torch.minimum(distances, candidate_distances).sum().item()
                    if potential < best_potential:
                        best, best_potential = idx, potential

            seeds.append(best)
            distances = torch.minimum(distances, ((points - points[best]) ** 2).sum(dim=1))

        return torch.tensor(seeds, dtype=torch.long)

    def draw(self, points: Tensor, n_clusters: int) -> Tensor:
        points = points.detach().to('cpu', torch.float64)
        seeds = self.seed_indices(points, n_clusters)

        distances = torch.cdist(points, points[seeds]) ** 2
        labels = distances.argmin(dim=1)
        labels[seeds] = torch.arange(n_clusters, dtype=torch.long)
        return labels
