"""
Process group backed by an mpi4py communicator.

Tensors are exchanged through their NumPy views using the buffer-based
(upper-case) mpi4py API. Every reduction writes into a separate receive
buffer.
"""

from typing import Optional, Sequence
import numpy as np
import torch
from torch import Tensor

from ..base.interfaces import ProcessGroup
from .groups import check_partition, collective


def _as_array(tensor: Tensor) -> np.ndarray:
    return np.ascontiguousarray(tensor.detach().cpu().numpy())


class MPIGroup(ProcessGroup):
    """Wraps an MPI communicator (``COMM_WORLD`` by default).

    Requires the optional ``mpi4py`` dependency. Variable-size collectives
    take element counts, so counts and displacements are scaled by the size
    of the trailing dimensions.
    """

    def __init__(self, comm=None, root: int = 0):
        from mpi4py import MPI

        self._mpi = MPI
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        self.root = root
        self._rank = self.comm.Get_rank()
        self._size = self.comm.Get_size()

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._size

    @staticmethod
    def _element_layout(shape, counts, displacements):
        stride = int(np.prod(shape[1:], dtype=np.int64)) if len(shape) > 1 else 1
        return ([int(c) * stride for c in counts],
                [int(d) * stride for d in displacements])

    def scatterv(self, full: Tensor, counts: Sequence[int],
                 displacements: Sequence[int], root: int = 0) -> Tensor:
        check_partition(counts, displacements, self._size)
        source = _as_array(full)
        received = np.empty((counts[self._rank],) + source.shape[1:], dtype=source.dtype)
        elem_counts, elem_displs = self._element_layout(source.shape, counts, displacements)
        send = [source, (elem_counts, elem_displs)] if self._rank == root else None
        with collective('Scatterv'):
            self.comm.Scatterv(send, received, root=root)
        return torch.from_numpy(received)

    def allgatherv(self, local: Tensor, counts: Sequence[int],
                   displacements: Sequence[int]) -> Tensor:
        check_partition(counts, displacements, self._size)
        if local.shape[0] != counts[self._rank]:
            raise ValueError(f"Expected {counts[self._rank]} items, got {local.shape[0]}")
        send = _as_array(local)
        received = np.empty((sum(counts),) + send.shape[1:], dtype=send.dtype)
        elem_counts, elem_displs = self._element_layout(received.shape, counts, displacements)
        with collective('Allgatherv'):
            self.comm.Allgatherv(send, [received, (elem_counts, elem_displs)])
        return torch.from_numpy(received)

    def allreduce_sum(self, tensor: Tensor) -> Tensor:
        send = _as_array(tensor)
        received = np.empty_like(send)
        with collective('Allreduce'):
            self.comm.Allreduce(send, received, op=self._mpi.SUM)
        return torch.from_numpy(received)

    def broadcast(self, tensor: Tensor, root: int = 0) -> Tensor:
        buffer = _as_array(tensor).copy()
        with collective('Bcast'):
            self.comm.Bcast(buffer, root=root)
        return torch.from_numpy(buffer)

    def barrier(self) -> None:
        with collective('Barrier'):
            self.comm.Barrier()

    def abort(self, exc: Optional[BaseException] = None) -> None:
        self.comm.Abort(1)
