"""
In-process process groups.

``LocalGroup`` is the trivial single-worker group. ``ThreadGroup`` runs
``size`` workers as threads of one process that exchange tensors through a
shared hub guarded by a ``threading.Barrier``; ``run_spmd`` launches them.
Both follow exactly the same collective semantics as the MPI and
``torch.distributed`` groups, which makes them the reference for testing the
engine with several workers.
"""

from contextlib import contextmanager
from typing import Optional, Sequence, Callable, Any, List
import threading
import torch
from torch import Tensor

from ..base.interfaces import ProcessGroup
from ..base.exceptions import CollectiveError


def check_partition(counts: Sequence[int], displacements: Sequence[int],
                    size: int) -> None:
    """Validate that ``counts``/``displacements`` describe one slice per worker."""
    if len(counts) != size or len(displacements) != size:
        raise ValueError(
            f"Expected {size} counts and displacements, got "
            f"{len(counts)} and {len(displacements)}"
        )
    if any(c < 0 for c in counts):
        raise ValueError(f"Negative count in {list(counts)}")


@contextmanager
def collective(op: str):
    """Re-raise transport errors of a collective as ``CollectiveError``."""
    try:
        yield
    except CollectiveError:
        raise
    except (ValueError, TypeError):
        raise
    except Exception as e:
        raise CollectiveError(f"{op} failed: {e}") from e


class LocalGroup(ProcessGroup):
    """Group consisting of the calling process only."""

    @property
    def rank(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return 1

    def scatterv(self, full: Tensor, counts: Sequence[int],
                 displacements: Sequence[int], root: int = 0) -> Tensor:
        check_partition(counts, displacements, 1)
        start = displacements[0]
        return full[start:start + counts[0]].clone()

    def allgatherv(self, local: Tensor, counts: Sequence[int],
                   displacements: Sequence[int]) -> Tensor:
        check_partition(counts, displacements, 1)
        if local.shape[0] != counts[0]:
            raise ValueError(f"Expected {counts[0]} items, got {local.shape[0]}")
        return local.clone()

    def allreduce_sum(self, tensor: Tensor) -> Tensor:
        return tensor.clone()

    def broadcast(self, tensor: Tensor, root: int = 0) -> Tensor:
        return tensor.clone()

    def barrier(self) -> None:
        pass


class _Hub:
    """State shared by the workers of one ``ThreadGroup``."""

    def __init__(self, size: int, timeout: Optional[float] = None):
        self.size = size
        self.timeout = timeout
        self.barrier = threading.Barrier(size)
        self.slots: List[Any] = [None] * size


class ThreadGroup(ProcessGroup):
    """One worker of a group of threads inside a single process.

    A collective is two barrier rounds: every worker publishes its
    contribution, then reads all contributions and builds its private result,
    then waits again so that the slots can be reused by the next collective.
    Results are combined in rank order, hence identical on every worker.
    """

    def __init__(self, rank: int, hub: _Hub):
        if not 0 <= rank < hub.size:
            raise ValueError(f"rank {rank} out of range for group of {hub.size}")
        self._rank = rank
        self._hub = hub

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._hub.size

    def _wait(self) -> None:
        try:
            self._hub.barrier.wait(self._hub.timeout)
        except threading.BrokenBarrierError as e:
            raise CollectiveError(
                f"worker {self._rank}: group aborted during a collective"
            ) from e

    def _exchange(self, value: Any, combine: Callable[[List[Any]], Any]) -> Any:
        hub = self._hub
        hub.slots[self._rank] = value
        self._wait()
        result = combine(list(hub.slots))
        self._wait()
        return result

    def scatterv(self, full: Tensor, counts: Sequence[int],
                 displacements: Sequence[int], root: int = 0) -> Tensor:
        check_partition(counts, displacements, self.size)
        start = displacements[self._rank]
        stop = start + counts[self._rank]
        return self._exchange(
            full if self._rank == root else None,
            lambda values: values[root][start:stop].clone()
        )

    def allgatherv(self, local: Tensor, counts: Sequence[int],
                   displacements: Sequence[int]) -> Tensor:
        check_partition(counts, displacements, self.size)
        if local.shape[0] != counts[self._rank]:
            raise ValueError(
                f"worker {self._rank}: expected {counts[self._rank]} items, "
                f"got {local.shape[0]}"
            )

        def combine(values):
            full = torch.empty((sum(counts),) + tuple(local.shape[1:]), dtype=local.dtype)
            for rank, part in enumerate(values):
                start = displacements[rank]
                full[start:start + counts[rank]] = part
            return full

        return self._exchange(local, combine)

    def allreduce_sum(self, tensor: Tensor) -> Tensor:
        def combine(values):
            total = values[0].clone()
            for part in values[1:]:
                total += part
            return total

        return self._exchange(tensor, combine)

    def broadcast(self, tensor: Tensor, root: int = 0) -> Tensor:
        return self._exchange(
            tensor if self._rank == root else None,
            lambda values: values[root].clone()
        )

    def barrier(self) -> None:
        self._wait()

    def abort(self, exc: Optional[BaseException] = None) -> None:
        self._hub.barrier.abort()


def run_spmd(fn: Callable[..., Any], size: int, *args,
             timeout: Optional[float] = None, **kwargs) -> List[Any]:
    """Run ``fn(group, *args, **kwargs)`` on ``size`` thread workers.

    Args:
        fn: Worker body; receives its ``ThreadGroup`` as first argument
        size: Number of workers
        timeout: Optional per-collective timeout in seconds

    Returns:
        List of the workers' return values, indexed by rank

    Raises:
        The first worker exception that is not a consequence of another
        worker's failure. A failing worker aborts the group so that no peer
        stays blocked in a collective.
    """
    if size < 1:
        raise ValueError(f"size must be at least 1, got {size}")

    hub = _Hub(size, timeout=timeout)
    results: List[Any] = [None] * size
    errors: List[Optional[BaseException]] = [None] * size

    def target(rank: int) -> None:
        group = ThreadGroup(rank, hub)
        try:
            results[rank] = fn(group, *args, **kwargs)
        except BaseException as e:
            errors[rank] = e
            group.abort(e)

    threads = [
        threading.Thread(target=target, args=(rank,), name=f"cocluster-worker-{rank}")
        for rank in range(size)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    failures = [e for e in errors if e is not None]
    if failures:
        primary = [e for e in failures if not isinstance(e, CollectiveError)]
        raise (primary or failures)[0]

    return results
