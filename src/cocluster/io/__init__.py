"""Matrix and label file I/O."""

from .files import load_matrix, read_labels, write_labels

__all__ = [
    'load_matrix',
    'read_labels',
    'write_labels'
]
