"""
Input validation for matrices and label arrays.

Every worker validates its inputs before the first collective, so invalid
input fails uniformly and no collective is left half-done.
"""

from typing import Optional, Union
import torch
from torch import Tensor
import numpy as np


def validate_matrix(X: Union[Tensor, np.ndarray, list],
                    dtype: torch.dtype = torch.float32,
                    device: Optional[torch.device] = None,
                    ensure_finite: bool = True) -> Tensor:
    """Validate and convert the input matrix to a 2D tensor.

    Args:
        X: Input matrix (tensor, numpy array, or nested list)
        dtype: Target data type
        device: Target device
        ensure_finite: Whether to check for inf/nan

    Returns:
        Validated (R, C) tensor

    Raises:
        ValueError: If validation fails
    """
    if isinstance(X, Tensor):
        X = X.detach().to(dtype=dtype, device=device)
    elif isinstance(X, np.ndarray):
        X = torch.from_numpy(np.ascontiguousarray(X)).to(dtype=dtype, device=device)
    elif isinstance(X, list):
        X = torch.tensor(X, dtype=dtype, device=device)
    else:
        raise TypeError(f"Cannot convert {type(X)} to tensor")

    if X.dim() != 2:
        raise ValueError(f"Expected 2D matrix, got {X.dim()}D")

    if X.shape[0] < 1 or X.shape[1] < 1:
        raise ValueError(f"Matrix must have at least one row and column, got shape {tuple(X.shape)}")

    if ensure_finite and not torch.isfinite(X).all():
        raise ValueError("Matrix contains NaN or infinite values")

    return X


def validate_labels(labels: Union[Tensor, np.ndarray, list],
                    n_items: int,
                    n_clusters: int,
                    name: str = 'labels') -> Tensor:
    """Validate a label array and convert it to an int64 CPU tensor.

    Args:
        labels: Label array
        n_items: Expected length
        n_clusters: Labels must lie in ``[0, n_clusters)``
        name: Name used in error messages

    Returns:
        (n_items,) int64 tensor (always a copy)
    """
    if isinstance(labels, Tensor):
        if labels.is_floating_point():
            raise TypeError(f"{name} must be integers, got {labels.dtype}")
        labels = labels.detach().cpu().to(torch.long).clone()
    else:
        arr = np.asarray(labels)
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise TypeError(f"{name} must be integers, got {arr.dtype}")
        labels = torch.from_numpy(arr.astype(np.int64).reshape(-1).copy())

    if labels.dim() != 1:
        raise ValueError(f"{name} must be 1D, got {labels.dim()}D")

    if labels.shape[0] != n_items:
        raise ValueError(f"Expected {n_items} {name}, got {labels.shape[0]}")

    if labels.numel() > 0:
        lo, hi = labels.min().item(), labels.max().item()
        if lo < 0 or hi >= n_clusters:
            raise ValueError(
                f"{name} must lie in [0, {n_clusters}), found range [{lo}, {hi}]"
            )

    return labels


def check_n_clusters(n_clusters: int, n_items: int, name: str = 'n_clusters') -> None:
    """Check that a cluster count is valid for an axis of ``n_items``."""
    if not isinstance(n_clusters, (int, np.integer)) or isinstance(n_clusters, bool):
        raise TypeError(f"{name} must be an integer, got {type(n_clusters)}")

    if n_clusters < 1:
        raise ValueError(f"{name} must be positive, got {n_clusters}")

    if n_clusters > n_items:
        raise ValueError(f"{name}={n_clusters} cannot exceed the axis length {n_items}")


def check_random_state(random_state: Optional[Union[int, torch.Generator]]) -> Optional[torch.Generator]:
    """Turn seed into a torch Generator.

    Args:
        random_state: None, int seed, or Generator

    Returns:
        Generator or None
    """
    if random_state is None:
        return None
    elif isinstance(random_state, (int, np.integer)):
        generator = torch.Generator()
        generator.manual_seed(int(random_state))
        return generator
    elif isinstance(random_state, torch.Generator):
        return random_state
    else:
        raise ValueError(f"random_state must be None, int, or Generator, got {type(random_state)}")
