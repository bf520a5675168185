"""Row and column label updates."""

from .labels import LabelUpdateCoordinator

__all__ = ['LabelUpdateCoordinator']
