"""Pluggable compute kernels: NumPy reference and torch (CPU/GPU)."""

from typing import Optional, Union
import torch

from ..base.interfaces import ComputeKernels
from .numpy_kernels import NumpyKernels
from .torch_kernels import TorchKernels, select_labels

KERNELS = ('auto', 'torch', 'numpy')


def get_kernels(name: str = 'auto',
                device: Optional[Union[str, torch.device]] = None) -> ComputeKernels:
    """Resolve a kernel implementation by name.

    Args:
        name: 'numpy' for the CPU reference, 'torch' or 'auto' for the torch
            kernels on ``device`` (best available device when None)
        device: Device for the torch kernels

    Returns:
        Kernel instance
    """
    if name == 'numpy':
        if device is not None and str(device) not in ('cpu', 'auto'):
            raise ValueError(f"NumPy kernels only run on the CPU, got device {device}")
        return NumpyKernels()
    elif name in ('torch', 'auto'):
        return TorchKernels(device=device)
    else:
        raise ValueError(f"Unknown kernels: {name}; expected one of {KERNELS}")


__all__ = [
    'KERNELS',
    'get_kernels',
    'NumpyKernels',
    'TorchKernels',
    'select_labels'
]
