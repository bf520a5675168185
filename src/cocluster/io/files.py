"""
Reading matrices and reading/writing label files.

Label file format (plain text, space separated, newline terminated)::

    <n_rows> <n_cols>
    <row label 0> <row label 1> ... <row label n_rows-1>
    <col label 0> <col label 1> ... <col label n_cols-1>

Writing the same labels always produces the same bytes, and reading a
written file reproduces the labels exactly.
"""

from pathlib import Path
from typing import Tuple, Union
import numpy as np
import torch
from torch import Tensor

PathLike = Union[str, Path]


def load_matrix(path: PathLike) -> np.ndarray:
    """Load a dense 2D matrix as float32.

    ``.npy`` files are read with ``numpy.load``; anything else is parsed as
    whitespace or comma separated text.
    """
    path = Path(path)
    if path.suffix == '.npy':
        matrix = np.load(path, allow_pickle=False)
    else:
        with open(path) as f:
            first = f.readline()
        delimiter = ',' if ',' in first else None
        matrix = np.loadtxt(path, delimiter=delimiter, ndmin=2)

    if matrix.ndim != 2:
        raise ValueError(f"{path}: expected a 2D matrix, got {matrix.ndim}D")
    if not np.issubdtype(matrix.dtype, np.number):
        raise ValueError(f"{path}: matrix must be numeric, got {matrix.dtype}")
    if not np.isfinite(matrix).all():
        raise ValueError(f"{path}: matrix contains NaN or infinite values")
    return np.ascontiguousarray(matrix, dtype=np.float32)


def _format_labels(labels) -> str:
    if isinstance(labels, Tensor):
        labels = labels.detach().cpu().numpy()
    return ' '.join(str(int(label)) for label in np.asarray(labels).reshape(-1))


def write_labels(path: PathLike, row_labels, col_labels) -> None:
    """Write row and column labels to ``path``."""
    n_rows = len(row_labels)
    n_cols = len(col_labels)
    with open(path, 'w') as f:
        f.write(f"{n_rows} {n_cols}\n")
        f.write(_format_labels(row_labels) + "\n")
        f.write(_format_labels(col_labels) + "\n")


def _parse_line(line: str, expected: int, what: str, path: PathLike) -> Tensor:
    fields = line.split()
    if len(fields) != expected:
        raise ValueError(f"{path}: expected {expected} {what}, found {len(fields)}")
    try:
        values = [int(field) for field in fields]
    except ValueError as e:
        raise ValueError(f"{path}: {what} must be integers") from e
    return torch.tensor(values, dtype=torch.long)


def read_labels(path: PathLike) -> Tuple[Tensor, Tensor]:
    """Read ``(row_labels, col_labels)`` written by ``write_labels``."""
    with open(path) as f:
        lines = f.read().split('\n')

    if len(lines) < 3:
        raise ValueError(f"{path}: expected a header, row labels and column labels")

    header = lines[0].split()
    if len(header) != 2:
        raise ValueError(f"{path}: header must be '<n_rows> <n_cols>', got {lines[0]!r}")
    try:
        n_rows, n_cols = int(header[0]), int(header[1])
    except ValueError as e:
        raise ValueError(f"{path}: header must contain two integers") from e

    row_labels = _parse_line(lines[1], n_rows, 'row labels', path)
    col_labels = _parse_line(lines[2], n_cols, 'column labels', path)

    if any(line.strip() for line in lines[3:]):
        raise ValueError(f"{path}: unexpected content after column labels")

    return row_labels, col_labels
