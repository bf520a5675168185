"""Initialization strategies for co-clustering labels."""

from .random import RandomLabelInit
from .kmeans_plusplus import KMeansPlusPlusLabelInit

INIT_METHODS = ('k-means++', 'random')


def get_initializer(init: str = 'k-means++', random_state=None):
    """Resolve an initialization strategy by name."""
    if init == 'k-means++':
        return KMeansPlusPlusLabelInit(random_state)
    elif init == 'random':
        return RandomLabelInit(random_state)
    else:
        raise ValueError(f"Unknown init method: {init}; expected one of {INIT_METHODS}")


__all__ = [
    'INIT_METHODS',
    'get_initializer',
    'RandomLabelInit',
    'KMeansPlusPlusLabelInit'
]
