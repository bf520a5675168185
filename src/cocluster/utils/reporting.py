"""
Progress reporters.

Only the coordinating worker reports, so every line is printed once per run
no matter how many workers take part.
"""

from typing import List, Dict, Any, Optional, TextIO
import sys

from ..base.interfaces import ProgressReporter


class PrintReporter(ProgressReporter):
    """Prints per-iteration progress and final timings.

    Args:
        stream: Output stream (stdout when None)
        every: Print the first and every ``every``-th iteration
    """

    def __init__(self, stream: Optional[TextIO] = None, every: int = 1):
        self.stream = stream
        self.every = max(1, every)

    def _print(self, message: str) -> None:
        print(message, file=self.stream if self.stream is not None else sys.stdout, flush=True)

    def on_start(self, n_rows: int, n_cols: int, n_workers: int) -> None:
        self._print(f"clustering {n_rows}x{n_cols} matrix on {n_workers} worker(s)")

    def on_iteration(self, state) -> None:
        if state.iteration % self.every and state.iteration != 1:
            return
        self._print(
            f"iteration {state.iteration}: {state.num_updated} labels were updated, "
            f"average error is {state.average_distortion}"
        )

    def on_finish(self, total_time: float, n_iter: int, converged: bool) -> None:
        per_iteration = total_time / n_iter if n_iter else 0.0
        if converged:
            self._print(f"converged after {n_iter} iterations")
        self._print(f"clustering time total: {total_time} seconds")
        self._print(f"clustering time per iteration: {per_iteration} seconds")


class HistoryReporter(ProgressReporter):
    """Records every event instead of printing it."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def on_start(self, n_rows: int, n_cols: int, n_workers: int) -> None:
        self.events.append({'event': 'start', 'n_rows': n_rows,
                            'n_cols': n_cols, 'n_workers': n_workers})

    def on_iteration(self, state) -> None:
        self.events.append({'event': 'iteration', **state.as_dict()})

    def on_finish(self, total_time: float, n_iter: int, converged: bool) -> None:
        self.events.append({'event': 'finish', 'total_time': total_time,
                            'n_iter': n_iter, 'converged': converged})

    @property
    def iterations(self) -> List[Dict[str, Any]]:
        return [e for e in self.events if e['event'] == 'iteration']
