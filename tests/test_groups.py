# tests/test_groups.py
"""
Process groups: collective semantics of the local and thread groups, error
propagation, and single-process torch.distributed / MPI groups.
"""

from __future__ import annotations

import pytest
import torch

from cocluster.base import CollectiveError
from cocluster.distributed import (
    LocalGroup, run_spmd, plan_partition, init_process_group
)


def test_local_group_collectives():
    group = LocalGroup()
    assert group.rank == 0 and group.size == 1 and group.is_root

    full = torch.arange(5)
    local = group.scatterv(full, (5,), (0,))
    assert torch.equal(local, full)
    assert local.data_ptr() != full.data_ptr()

    gathered = group.allgatherv(local, (5,), (0,))
    assert torch.equal(gathered, full)

    x = torch.tensor([1.0, 2.0], dtype=torch.float64)
    reduced = group.allreduce_sum(x)
    assert torch.equal(reduced, x)
    assert reduced.data_ptr() != x.data_ptr()

    group.barrier()


def test_local_group_rejects_bad_partition():
    group = LocalGroup()
    with pytest.raises(ValueError):
        group.scatterv(torch.arange(4), (2, 2), (0, 2))
    with pytest.raises(ValueError):
        group.allgatherv(torch.arange(3), (4,), (0,))


@pytest.mark.parametrize("size", [1, 2, 3, 4, 7])
def test_thread_group_scatter_gather_roundtrip(size):
    n = 5
    part = plan_partition(n, size)

    def worker(group):
        full = torch.arange(n) * 10 if group.is_root else torch.full((n,), -1)
        local = group.scatterv(full, part.counts, part.displacements)
        assert local.shape[0] == part.counts[group.rank]
        gathered = group.allgatherv(local + 1, part.counts, part.displacements)
        return local, gathered

    results = run_spmd(worker, size)
    expected_full = torch.arange(n) * 10 + 1
    for rank, (local, gathered) in enumerate(results):
        assert torch.equal(local, (torch.arange(n) * 10)[part.slice_of(rank)])
        assert torch.equal(gathered, expected_full)


def test_thread_group_allreduce_and_broadcast():
    def worker(group):
        contribution = torch.tensor([float(group.rank), 1.0], dtype=torch.float64)
        total = group.allreduce_sum(contribution)
        # the contribution itself is untouched
        assert contribution[1].item() == 1.0
        value = torch.tensor([group.rank + 100])
        shared = group.broadcast(value, root=2)
        return total, shared

    results = run_spmd(worker, 4)
    for total, shared in results:
        assert total.tolist() == [6.0, 4.0]
        assert shared.tolist() == [102]


def test_failing_worker_aborts_group():
    def worker(group):
        if group.rank == 1:
            raise ValueError("boom on worker 1")
        group.barrier()
        return group.rank

    with pytest.raises(ValueError, match="boom"):
        run_spmd(worker, 3, timeout=30)


def test_peers_see_collective_error():
    seen = {}

    def worker(group):
        if group.rank == 0:
            raise KeyError("root failed")
        try:
            group.allreduce_sum(torch.ones(1))
        except CollectiveError as e:
            seen[group.rank] = e
            raise

    with pytest.raises(KeyError):
        run_spmd(worker, 3, timeout=30)
    assert set(seen) == {1, 2}


def test_run_spmd_rejects_empty_group():
    with pytest.raises(ValueError):
        run_spmd(lambda group: None, 0)


def test_init_process_group_backends():
    assert isinstance(init_process_group('local'), LocalGroup)
    with pytest.raises(ValueError):
        init_process_group('threads')
    with pytest.raises(ValueError):
        init_process_group('carrier-pigeon')


@pytest.mark.skipif(
    not torch.distributed.is_available() or not torch.distributed.is_gloo_available(),
    reason="torch.distributed with gloo is required"
)
def test_torch_distributed_group_single_process(tmp_path):
    import torch.distributed as dist
    from cocluster.distributed.torch_dist import TorchDistributedGroup

    dist.init_process_group(
        backend='gloo',
        init_method=f"file://{tmp_path / 'rendezvous'}",
        rank=0,
        world_size=1
    )
    try:
        group = TorchDistributedGroup()
        assert group.rank == 0 and group.size == 1

        full = torch.arange(6)
        local = group.scatterv(full, (6,), (0,))
        assert torch.equal(local, full)
        assert torch.equal(group.allgatherv(local, (6,), (0,)), full)

        x = torch.tensor([1.5, 2.5], dtype=torch.float64)
        assert torch.equal(group.allreduce_sum(x), x)
        assert torch.equal(group.broadcast(x), x)
        group.barrier()
    finally:
        dist.destroy_process_group()


def test_mpi_group_single_process():
    pytest.importorskip("mpi4py")
    from cocluster.distributed.mpi import MPIGroup
    from mpi4py import MPI

    group = MPIGroup(MPI.COMM_SELF)
    assert group.size == 1

    full = torch.arange(4, dtype=torch.long)
    local = group.scatterv(full, (4,), (0,))
    assert torch.equal(local, full)
    assert torch.equal(group.allgatherv(local, (4,), (0,)), full)

    x = torch.tensor([3.0, 4.0], dtype=torch.float64)
    assert torch.equal(group.allreduce_sum(x), x)
    assert torch.equal(group.broadcast(x), x)
    group.barrier()
