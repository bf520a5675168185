"""
Process group backed by ``torch.distributed``.

Collectives run on CPU tensors, so the ``gloo`` backend is the natural
choice; it is what ``init_process_group`` uses by default.
"""

from typing import Optional, Sequence
import torch
import torch.distributed as dist
from torch import Tensor

from ..base.interfaces import ProcessGroup
from .groups import check_partition, collective


class TorchDistributedGroup(ProcessGroup):
    """Wraps an initialized ``torch.distributed`` process group.

    ``torch.distributed`` has no variable-size scatter or gather, so:

    - ``scatterv`` broadcasts the root's array and keeps the owned slice;
    - ``allgatherv`` pads every slice to the largest count, gathers and trims.
    """

    def __init__(self, group: Optional[dist.ProcessGroup] = None):
        if not dist.is_available() or not dist.is_initialized():
            raise RuntimeError(
                "torch.distributed is not initialized; "
                "call torch.distributed.init_process_group() first"
            )
        self._group = group
        self._rank = dist.get_rank(group)
        self._size = dist.get_world_size(group)

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._size

    def scatterv(self, full: Tensor, counts: Sequence[int],
                 displacements: Sequence[int], root: int = 0) -> Tensor:
        check_partition(counts, displacements, self._size)
        buffer = full.detach().cpu().clone()
        with collective('scatterv'):
            dist.broadcast(buffer, src=root, group=self._group)
        start = displacements[self._rank]
        return buffer[start:start + counts[self._rank]].clone()

    def allgatherv(self, local: Tensor, counts: Sequence[int],
                   displacements: Sequence[int]) -> Tensor:
        check_partition(counts, displacements, self._size)
        if local.shape[0] != counts[self._rank]:
            raise ValueError(f"Expected {counts[self._rank]} items, got {local.shape[0]}")

        trailing = tuple(local.shape[1:])
        max_count = max(counts)
        if max_count == 0:
            return local.new_empty((0,) + trailing)

        padded = torch.zeros((max_count,) + trailing, dtype=local.dtype)
        padded[:local.shape[0]] = local.detach().cpu()
        parts = [torch.empty_like(padded) for _ in range(self._size)]
        with collective('allgatherv'):
            dist.all_gather(parts, padded, group=self._group)

        full = torch.empty((sum(counts),) + trailing, dtype=local.dtype)
        for rank, part in enumerate(parts):
            start = displacements[rank]
            full[start:start + counts[rank]] = part[:counts[rank]]
        return full

    def allreduce_sum(self, tensor: Tensor) -> Tensor:
        result = tensor.detach().cpu().clone()
        with collective('allreduce'):
            dist.all_reduce(result, op=dist.ReduceOp.SUM, group=self._group)
        return result

    def broadcast(self, tensor: Tensor, root: int = 0) -> Tensor:
        result = tensor.detach().cpu().clone()
        with collective('broadcast'):
            dist.broadcast(result, src=root, group=self._group)
        return result

    def barrier(self) -> None:
        with collective('barrier'):
            dist.barrier(group=self._group)

    def abort(self, exc: Optional[BaseException] = None) -> None:
        if dist.is_initialized():
            dist.destroy_process_group()
