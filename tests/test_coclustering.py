# tests/test_coclustering.py
"""
DistributedCoclustering estimator: the two-block scenario, iteration cap,
parameter handling, input validation and root-only reporting.
"""

from __future__ import annotations

import io

import numpy as np
import pytest
import torch

from cocluster import DistributedCoclustering, cocluster, run_spmd
from cocluster.kernels import NumpyKernels
from cocluster.utils import HistoryReporter, PrintReporter, MaxIterations

from data_gen import make_two_block_matrix


ROW_INIT = [0, 0, 0, 1]
COL_INIT = [0, 0, 0, 1]


def test_two_block_matrix_converges(cpu_kernels):
    X = make_two_block_matrix()
    reporter = HistoryReporter()
    model = DistributedCoclustering(2, 2, kernels=cpu_kernels, reporter=reporter)

    rows, cols = model.fit_predict(X, ROW_INIT, COL_INIT)

    assert rows.tolist() == [0, 0, 1, 1]
    assert cols.tolist() == [0, 0, 1, 1]
    assert model.converged_
    assert model.n_iter_ == 2
    assert [s.num_updated for s in model.history_] == [2, 0]
    assert model.history_[0].average_distortion == pytest.approx(8.0 / 3.0, rel=1e-5)
    assert model.distortion_ == pytest.approx(0.0)

    averages = model.cluster_averages_.averages.cpu()
    assert averages.tolist() == [[1.0, 5.0], [5.0, 9.0]]

    kinds = [e["event"] for e in reporter.events]
    assert kinds == ["start", "iteration", "iteration", "finish"]
    assert reporter.events[-1]["converged"] is True


def test_distortion_never_increases(rng, cpu_kernels):
    X = rng.normal(size=(30, 12)).astype(np.float32)
    model = DistributedCoclustering(4, 3, kernels=cpu_kernels, random_state=3)
    model.fit(X)

    distortions = [s.distortion for s in model.history_]
    for before, after in zip(distortions, distortions[1:]):
        assert after <= before + 1e-6 * max(1.0, abs(before))


def test_iteration_cap(cpu_kernels):
    X = make_two_block_matrix()
    model = DistributedCoclustering(2, 2, max_iter=3, kernels=cpu_kernels,
                                    convergence_criterion=MaxIterations())
    model.fit(X, ROW_INIT, COL_INIT)
    assert model.n_iter_ == 3
    assert not model.converged_

    model = DistributedCoclustering(2, 2, max_iter=1, kernels=cpu_kernels)
    model.fit(X, ROW_INIT, COL_INIT)
    assert model.n_iter_ == 1
    assert not model.converged_
    assert model.row_labels_.tolist() == [0, 0, 1, 1]


def test_zero_iterations_leaves_labels_untouched(cpu_kernels):
    X = torch.from_numpy(make_two_block_matrix())
    rows = torch.tensor(ROW_INIT)
    cols = torch.tensor(COL_INIT)
    model = DistributedCoclustering(2, 2, kernels=cpu_kernels)
    model.run(X, rows, cols, max_iterations=0)

    assert rows.tolist() == ROW_INIT and cols.tolist() == COL_INIT
    assert model.n_iter_ == 0 and model.history_ == []
    with pytest.raises(RuntimeError):
        model.distortion_


def test_run_updates_in_place(cpu_kernels):
    X = torch.from_numpy(make_two_block_matrix())
    rows = torch.tensor(ROW_INIT)
    cols = torch.tensor(COL_INIT)
    model = DistributedCoclustering(2, 2, kernels=cpu_kernels)

    out_rows, out_cols = model.run(X, rows, cols)
    assert out_rows is rows and out_cols is cols
    assert rows.tolist() == [0, 0, 1, 1]

    with pytest.raises(TypeError):
        model.run(X, rows.int(), cols)
    with pytest.raises(ValueError):
        model.run(X, rows, cols, max_iterations=-1)


def test_single_cluster_per_axis(cpu_kernels):
    X = make_two_block_matrix()
    model = DistributedCoclustering(1, 1, kernels=cpu_kernels)
    rows, cols = model.fit_predict(X)
    assert rows.tolist() == [0, 0, 0, 0]
    assert cols.tolist() == [0, 0, 0, 0]
    assert model.n_iter_ == 1
    assert model.cluster_averages_.averages.item() == pytest.approx(5.0)


def test_numpy_kernels_give_same_result(rng, cpu_kernels):
    X = rng.normal(size=(20, 9)).astype(np.float32)
    a = DistributedCoclustering(3, 2, kernels=cpu_kernels, random_state=7).fit(X)
    b = DistributedCoclustering(3, 2, kernels=NumpyKernels(), random_state=7).fit(X)
    assert torch.equal(a.row_labels_, b.row_labels_)
    assert torch.equal(a.col_labels_, b.col_labels_)
    assert a.n_iter_ == b.n_iter_


def test_random_init_is_reproducible(cpu_kernels):
    X = np.arange(60, dtype=np.float32).reshape(10, 6)
    a = DistributedCoclustering(3, 2, kernels=cpu_kernels, init="random",
                                random_state=11, max_iter=0).fit(X)
    b = DistributedCoclustering(3, 2, kernels=cpu_kernels, init="random",
                                random_state=11, max_iter=0).fit(X)
    assert torch.equal(a.row_labels_, b.row_labels_)
    assert torch.bincount(a.row_labels_).tolist() == [4, 3, 3]


@pytest.mark.parametrize("seed", range(50))
def test_default_init_separates_two_blocks(seed):
    model = DistributedCoclustering(2, 2, kernels=NumpyKernels(), random_state=seed)
    rows, cols = model.fit_predict(make_two_block_matrix())

    for labels in (rows.tolist(), cols.tolist()):
        assert labels[0] == labels[1] != labels[2] == labels[3]
    assert model.converged_
    assert model.distortion_ == pytest.approx(0.0)
    assert sorted(model.cluster_averages_.averages.flatten().tolist()) == [1.0, 5.0, 5.0, 9.0]


def test_unknown_init_method(cpu_kernels):
    model = DistributedCoclustering(2, 2, kernels=cpu_kernels, init="forgy")
    with pytest.raises(ValueError, match="Unknown init method"):
        model.fit(make_two_block_matrix())
    assert model.get_params()["init"] == "forgy"


@pytest.mark.parametrize("size", [2, 3])
def test_workers_agree_with_random_init(size):
    X = torch.rand(17, 8, generator=torch.Generator().manual_seed(5))

    def worker(group):
        # only the root's seed matters: its draw is broadcast
        model = DistributedCoclustering(
            3, 2, kernels=NumpyKernels(), group=group, random_state=group.rank
        )
        return model.fit_predict(X)

    results = run_spmd(worker, size)
    for rows, cols in results[1:]:
        assert torch.equal(rows, results[0][0])
        assert torch.equal(cols, results[0][1])

    single = DistributedCoclustering(3, 2, kernels=NumpyKernels(), random_state=0)
    rows, cols = single.fit_predict(X)
    assert torch.equal(rows, results[0][0])
    assert torch.equal(cols, results[0][1])


def test_reporter_only_on_root():
    X = make_two_block_matrix()
    reporters = [HistoryReporter() for _ in range(3)]

    def worker(group):
        model = DistributedCoclustering(2, 2, kernels=NumpyKernels(), group=group,
                                        reporter=reporters[group.rank])
        model.fit(X, ROW_INIT, COL_INIT)

    run_spmd(worker, 3)
    assert len(reporters[0].iterations) == 2
    assert reporters[1].events == [] and reporters[2].events == []


def test_verbose_prints_progress(capsys, cpu_kernels):
    X = make_two_block_matrix()
    model = DistributedCoclustering(2, 2, kernels=cpu_kernels, verbose=1)
    model.fit(X, ROW_INIT, COL_INIT)

    out = capsys.readouterr().out
    assert "iteration 1: 2 labels were updated, average error is" in out
    assert "iteration 2: 0 labels were updated, average error is 0.0" in out
    assert "clustering time total:" in out
    assert "clustering time per iteration:" in out


def test_print_reporter_every():
    stream = io.StringIO()
    reporter = PrintReporter(stream=stream, every=2)
    model = DistributedCoclustering(2, 2, kernels=NumpyKernels(), reporter=reporter,
                                    max_iter=4, convergence_criterion=MaxIterations())
    model.fit(make_two_block_matrix(), ROW_INIT, COL_INIT)

    lines = [l for l in stream.getvalue().splitlines() if l.startswith("iteration")]
    assert [l.split(":")[0] for l in lines] == ["iteration 1", "iteration 2", "iteration 4"]


def test_non_convergence_warns_when_verbose(cpu_kernels):
    model = DistributedCoclustering(2, 2, max_iter=1, kernels=cpu_kernels, verbose=1)
    with pytest.warns(UserWarning, match="Failed to converge"):
        model.fit(make_two_block_matrix(), ROW_INIT, COL_INIT)


@pytest.mark.parametrize(
    "kwargs, labels, error",
    [
        (dict(n_row_clusters=5, n_col_clusters=2), (None, None), ValueError),
        (dict(n_row_clusters=0, n_col_clusters=2), (None, None), ValueError),
        (dict(n_row_clusters=2.0, n_col_clusters=2), (None, None), TypeError),
        (dict(n_row_clusters=2, n_col_clusters=2), ([0, 0, 1], COL_INIT), ValueError),
        (dict(n_row_clusters=2, n_col_clusters=2), ([0, 0, 1, 2], COL_INIT), ValueError),
        (dict(n_row_clusters=2, n_col_clusters=2), (ROW_INIT, [0.0, 0.0, 1.0, 1.0]), TypeError),
    ],
)
def test_invalid_inputs(cpu_kernels, kwargs, labels, error):
    model = DistributedCoclustering(kernels=cpu_kernels, **kwargs)
    with pytest.raises(error):
        model.fit(make_two_block_matrix(), *labels)


def test_invalid_matrix(cpu_kernels):
    model = DistributedCoclustering(1, 1, kernels=cpu_kernels)
    with pytest.raises(ValueError):
        model.fit(np.ones(4, dtype=np.float32))
    with pytest.raises(ValueError):
        model.fit(np.array([[1.0, np.nan]]))
    with pytest.raises(TypeError):
        model.fit("not a matrix")


def test_get_set_params(cpu_kernels):
    model = DistributedCoclustering(2, 3, kernels=cpu_kernels)
    params = model.get_params()
    assert params["n_row_clusters"] == 2 and params["max_iter"] == 25
    assert params["init"] == "k-means++"

    model.set_params(max_iter=5, verbose=1)
    assert model.max_iter == 5 and model.verbose == 1
    with pytest.raises(ValueError):
        model.set_params(n_clusters=4)


def test_functional_interface(cpu_kernels):
    rows, cols = cocluster(make_two_block_matrix(), 2, 2, ROW_INIT, COL_INIT,
                           kernels=cpu_kernels)
    assert rows.tolist() == [0, 0, 1, 1]
    assert cols.tolist() == [0, 0, 1, 1]
