"""Co-clustering algorithms."""

from .coclustering import DistributedCoclustering, cocluster

__all__ = [
    'DistributedCoclustering',
    'cocluster'
]
