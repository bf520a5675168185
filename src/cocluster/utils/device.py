"""
Device selection for the compute kernels.

Matrices live on the kernel device; labels and reduction buffers always stay
on the CPU so that every process group can exchange them.
"""

from typing import Optional, Union
import torch
import warnings


def get_default_device() -> torch.device:
    """Get the default device based on availability.

    Returns:
        Default device (cuda if available, then mps, else cpu)
    """
    if torch.cuda.is_available():
        return torch.device('cuda')
    elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return torch.device('mps')
    else:
        return torch.device('cpu')


def parse_device(device: Optional[Union[str, torch.device]] = None) -> torch.device:
    """Parse device specification.

    Args:
        device: Device specification
            - None or 'auto': Use best available
            - 'cpu': Use CPU
            - 'cuda' / 'cuda:X': Use a CUDA device
            - 'mps': Use Apple Metal Performance Shaders
            - torch.device: Use as-is

    Returns:
        Parsed device
    """
    if device is None or device == 'auto':
        return get_default_device()

    if isinstance(device, torch.device):
        return device

    if isinstance(device, str):
        if device == 'cpu':
            return torch.device('cpu')
        elif device.startswith('cuda'):
            if not torch.cuda.is_available():
                warnings.warn("CUDA not available, falling back to CPU")
                return torch.device('cpu')
            return torch.device(device)
        elif device == 'mps':
            if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
                return torch.device('mps')
            else:
                warnings.warn("MPS not available, falling back to CPU")
                return torch.device('cpu')
        else:
            raise ValueError(f"Unknown device: {device}")
    else:
        raise TypeError(f"Device must be str or torch.device, got {type(device)}")


def device_for_rank(device: Optional[Union[str, torch.device]], rank: int) -> torch.device:
    """Pick one CUDA device per worker when several GPUs are visible.

    Explicit indexed devices ('cuda:1') are respected as given.
    """
    device = parse_device(device)
    if device.type == 'cuda' and device.index is None:
        n_gpus = torch.cuda.device_count()
        if n_gpus > 1:
            return torch.device('cuda', rank % n_gpus)
    return device


def synchronize_device(device: Optional[torch.device] = None) -> None:
    """Wait for queued kernels so that wall-clock timings are meaningful.

    Args:
        device: Device to synchronize (None for default)
    """
    if device is None:
        device = get_default_device()
    else:
        device = parse_device(device)

    if device.type == 'cuda':
        torch.cuda.synchronize(device)
