"""
Command line interface.

Examples:
    cocluster data.npy labels.txt --max-iterations 25 --output result.txt
    cocluster data.npy --row-clusters 3 --col-clusters 20 --backend threads --workers 4
    mpirun -np 4 cocluster data.npy labels.txt --backend mpi

Every process parses the same arguments and loads the same files; argument
and input errors are reported before any collective communication starts.
"""

from typing import Optional, List
import argparse
import sys
import time

from .algorithms.coclustering import DistributedCoclustering
from .base.interfaces import ProcessGroup
from .distributed import (
    BACKENDS, init_process_group, shutdown_process_group, run_spmd
)
from .io.files import load_matrix, read_labels, write_labels
from .kernels import KERNELS, get_kernels
from .utils.device import device_for_rank
from .utils.reporting import PrintReporter
from .initialization import INIT_METHODS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cocluster',
        description='Distributed co-clustering of a dense matrix.'
    )
    parser.add_argument('matrix', help='input matrix (.npy, or whitespace/CSV text)')
    parser.add_argument('labels', nargs='?', default=None,
                        help='initial row/column label file; drawn with --init when omitted')
    parser.add_argument('--row-clusters', type=int, default=None,
                        help='number of row clusters (default: max row label + 1)')
    parser.add_argument('--col-clusters', type=int, default=None,
                        help='number of column clusters (default: max column label + 1)')
    parser.add_argument('--max-iterations', type=int, default=25,
                        help='iteration cap (default: %(default)s)')
    parser.add_argument('--output', default='labels.txt',
                        help='output label file (default: %(default)s)')
    parser.add_argument('--backend', choices=BACKENDS, default='local',
                        help='process group backend (default: %(default)s)')
    parser.add_argument('--workers', type=int, default=None,
                        help='number of workers for the threads backend')
    parser.add_argument('--kernels', choices=KERNELS, default='auto',
                        help='compute kernels (default: %(default)s)')
    parser.add_argument('--device', default=None,
                        help="torch device for the kernels, e.g. 'cpu' or 'cuda'")
    parser.add_argument('--init', choices=INIT_METHODS, default='k-means++',
                        help='initial labels when no label file is given (default: %(default)s)')
    parser.add_argument('--seed', type=int, default=None,
                        help='seed for the initial labels')
    parser.add_argument('--plot', default=None,
                        help='save a picture of the reordered matrix to this file')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='do not report progress')
    return parser


def _check_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.max_iterations < 0:
        parser.error(f"--max-iterations must be non-negative, got {args.max_iterations}")
    if args.workers is not None:
        if args.backend != 'threads':
            parser.error("--workers is only used with --backend threads")
        if args.workers < 1:
            parser.error(f"--workers must be at least 1, got {args.workers}")
    if args.kernels == 'numpy' and args.device not in (None, 'cpu'):
        parser.error("--kernels numpy only runs on the cpu")
    if args.labels is None and (args.row_clusters is None or args.col_clusters is None):
        parser.error("--row-clusters and --col-clusters are required without a label file")


def load_inputs(parser: argparse.ArgumentParser, args: argparse.Namespace):
    """Load the matrix and initial labels, reporting problems as usage errors."""
    try:
        matrix = load_matrix(args.matrix)
    except (OSError, ValueError) as e:
        parser.error(f"cannot read matrix: {e}")

    row_labels = col_labels = None
    if args.labels is not None:
        try:
            row_labels, col_labels = read_labels(args.labels)
        except (OSError, ValueError) as e:
            parser.error(f"cannot read labels: {e}")
        if len(row_labels) != matrix.shape[0] or len(col_labels) != matrix.shape[1]:
            parser.error(
                f"label file is for a {len(row_labels)}x{len(col_labels)} matrix, "
                f"matrix is {matrix.shape[0]}x{matrix.shape[1]}"
            )

    n_row_clusters = args.row_clusters
    n_col_clusters = args.col_clusters
    if n_row_clusters is None:
        n_row_clusters = int(row_labels.max().item()) + 1
    if n_col_clusters is None:
        n_col_clusters = int(col_labels.max().item()) + 1

    for name, k, n in (('--row-clusters', n_row_clusters, matrix.shape[0]),
                       ('--col-clusters', n_col_clusters, matrix.shape[1])):
        if not 1 <= k <= n:
            parser.error(f"{name} must lie in [1, {n}], got {k}")

    for name, labels, k in (('row', row_labels, n_row_clusters),
                            ('column', col_labels, n_col_clusters)):
        if labels is not None and len(labels) and (labels.min() < 0 or labels.max() >= k):
            parser.error(f"{name} labels must lie in [0, {k})")

    return matrix, row_labels, col_labels, n_row_clusters, n_col_clusters


def _save_plot(path: str, matrix, model: DistributedCoclustering) -> None:
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt
    from .visualization import plot_cocluster_matrix, plot_distortion_history

    fig, (ax_matrix, ax_history) = plt.subplots(1, 2, figsize=(14, 5))
    plot_cocluster_matrix(matrix, model.row_labels_, model.col_labels_, ax=ax_matrix,
                          title='Co-clusters')
    plot_distortion_history(model.history_, ax=ax_history, title='Convergence')
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def run_worker(group: ProcessGroup, args: argparse.Namespace, matrix,
               row_labels, col_labels, n_row_clusters: int,
               n_col_clusters: int) -> DistributedCoclustering:
    """Body executed by every worker."""
    kernels = get_kernels(args.kernels, device_for_rank(args.device, group.rank)
                          if args.kernels != 'numpy' else None)
    model = DistributedCoclustering(
        n_row_clusters,
        n_col_clusters,
        max_iter=args.max_iterations,
        kernels=kernels,
        group=group,
        reporter=None if args.quiet else PrintReporter(),
        init=args.init,
        random_state=args.seed
    )
    model.fit(
        matrix,
        None if row_labels is None else row_labels.clone(),
        None if col_labels is None else col_labels.clone()
    )

    if group.is_root:
        write_labels(args.output, model.row_labels_, model.col_labels_)
        if args.plot:
            _save_plot(args.plot, matrix, model)
    return model


def main(argv: Optional[List[str]] = None) -> int:
    start_time = time.time()
    parser = build_parser()
    args = parser.parse_args(argv)
    _check_args(parser, args)
    inputs = load_inputs(parser, args)

    if args.backend == 'threads':
        try:
            run_spmd(run_worker, args.workers or 1, args, *inputs)
        except Exception as e:
            print(f"cocluster: error: {e}", file=sys.stderr)
            return 1
        is_root = True
    else:
        try:
            group = init_process_group(args.backend)
        except (ValueError, RuntimeError, ImportError) as e:
            print(f"cocluster: error: {' '.join(str(e).split())}", file=sys.stderr)
            return 1
        try:
            run_worker(group, args, *inputs)
        except Exception as e:
            print(f"cocluster: error (worker {group.rank}): {e}", file=sys.stderr)
            group.abort(e)
            return 1
        is_root = group.is_root
        shutdown_process_group(group)

    if is_root and not args.quiet:
        print(f"total execution time: {time.time() - start_time} seconds")
    return 0


if __name__ == '__main__':
    sys.exit(main())
