# tests/test_io.py
"""
Matrix loading and the label file format.
"""

from __future__ import annotations

import numpy as np
import pytest
import torch

from cocluster.io import load_matrix, read_labels, write_labels


def test_label_file_exact_bytes(tmp_path):
    path = tmp_path / "labels.txt"
    write_labels(path, torch.tensor([0, 0, 1, 1]), np.array([1, 0, 1]))
    assert path.read_bytes() == b"4 3\n0 0 1 1\n1 0 1\n"


def test_label_file_reads_back(tmp_path):
    rows = torch.tensor([2, 0, 1, 1, 0])
    cols = torch.tensor([0, 3, 3, 1, 2, 0, 1])
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"

    write_labels(first, rows, cols)
    read_rows, read_cols = read_labels(first)
    assert torch.equal(read_rows, rows) and torch.equal(read_cols, cols)
    assert read_rows.dtype == torch.long

    write_labels(second, read_rows, read_cols)
    assert first.read_bytes() == second.read_bytes()


@pytest.mark.parametrize(
    "content",
    [
        "",
        "4\n0 0 1 1\n0 1\n",
        "4 2\n0 0 1\n0 1\n",
        "4 2\n0 0 1 1\n0 1 1\n",
        "4 2\n0 0 x 1\n0 1\n",
        "a b\n0 0 1 1\n0 1\n",
        "4 2\n0 0 1 1\n",
        "4 2\n0 0 1 1\n0 1\n7 7\n",
    ],
)
def test_malformed_label_files(tmp_path, content):
    path = tmp_path / "bad.txt"
    path.write_text(content)
    with pytest.raises(ValueError):
        read_labels(path)


def test_missing_label_file(tmp_path):
    with pytest.raises(OSError):
        read_labels(tmp_path / "missing.txt")


def test_load_npy(tmp_path):
    X = np.arange(12, dtype=np.float64).reshape(3, 4)
    np.save(tmp_path / "m.npy", X)
    loaded = load_matrix(tmp_path / "m.npy")
    assert loaded.dtype == np.float32
    np.testing.assert_array_equal(loaded, X.astype(np.float32))


@pytest.mark.parametrize("sep", [" ", ","])
def test_load_text(tmp_path, sep):
    path = tmp_path / "m.txt"
    path.write_text(f"1{sep}2{sep}3\n4{sep}5{sep}6\n")
    np.testing.assert_array_equal(load_matrix(path), [[1, 2, 3], [4, 5, 6]])


def test_load_single_row_text(tmp_path):
    path = tmp_path / "row.csv"
    path.write_text("1,2,3\n")
    assert load_matrix(path).shape == (1, 3)


def test_load_rejects_bad_matrices(tmp_path):
    np.save(tmp_path / "v.npy", np.ones(5))
    with pytest.raises(ValueError):
        load_matrix(tmp_path / "v.npy")

    (tmp_path / "nan.txt").write_text("1 nan\n2 3\n")
    with pytest.raises(ValueError):
        load_matrix(tmp_path / "nan.txt")
