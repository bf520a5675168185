"""Partitioning and collective communication for SPMD workers."""

from .partition import plan_partition
from .groups import LocalGroup, ThreadGroup, run_spmd, check_partition
from ..base.interfaces import ProcessGroup

BACKENDS = ('local', 'threads', 'torch', 'mpi')


def init_process_group(backend: str = 'local',
                       torch_backend: str = 'gloo',
                       comm=None) -> ProcessGroup:
    """Create the process group for this worker.

    Args:
        backend: One of 'local', 'torch' or 'mpi'. Thread groups are created
            by ``run_spmd`` instead.
        torch_backend: Backend passed to ``torch.distributed`` when it has
            not been initialized yet (uses the ``env://`` rendezvous)
        comm: Optional mpi4py communicator for the 'mpi' backend

    Returns:
        Process group
    """
    if backend == 'local':
        return LocalGroup()
    elif backend == 'torch':
        import torch.distributed as dist
        from .torch_dist import TorchDistributedGroup

        if not dist.is_initialized():
            dist.init_process_group(backend=torch_backend)
        return TorchDistributedGroup()
    elif backend == 'mpi':
        from .mpi import MPIGroup
        return MPIGroup(comm)
    elif backend == 'threads':
        raise ValueError("Thread groups are created by run_spmd(fn, size)")
    else:
        raise ValueError(f"Unknown backend: {backend}; expected one of {BACKENDS}")


def shutdown_process_group(group: ProcessGroup) -> None:
    """Release resources held by ``group`` after a successful run."""
    from .torch_dist import TorchDistributedGroup

    if isinstance(group, TorchDistributedGroup):
        import torch.distributed as dist
        if dist.is_initialized():
            dist.destroy_process_group()


__all__ = [
    'BACKENDS',
    'plan_partition',
    'check_partition',
    'LocalGroup',
    'ThreadGroup',
    'run_spmd',
    'init_process_group',
    'shutdown_process_group'
]
