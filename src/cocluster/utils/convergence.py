"""
Convergence criteria for co-clustering.

The engine stops at a fixed point, when an iteration changes no label at
all. Other criteria can stop earlier:
- Change in average distortion
- Combinations of criteria
The iteration cap is always enforced by the controller.
"""

from typing import Dict, Any

from ..base.interfaces import ConvergenceCriterion


class NoLabelChanges(ConvergenceCriterion):
    """Convergence once no row or column changes its label."""

    def __init__(self, patience: int = 1):
        """
        Args:
            patience: Number of consecutive quiet iterations required
        """
        super().__init__()
        if patience < 1:
            raise ValueError(f"patience must be at least 1, got {patience}")
        self.patience = patience
        self._stable_count = 0

    def check(self, current_state: Dict[str, Any]) -> bool:
        """Check if the labels have reached a fixed point."""
        num_updated = current_state['num_updated']

        self.history.append({
            'iteration': current_state.get('iteration', len(self.history)),
            'num_updated': num_updated
        })

        if num_updated == 0:
            self._stable_count += 1
        else:
            self._stable_count = 0

        return self._stable_count >= self.patience

    def reset(self):
        super().reset()
        self._stable_count = 0


class ChangeInDistortion(ConvergenceCriterion):
    """Convergence based on relative change in average distortion."""

    def __init__(self, rel_tol: float = 1e-6, abs_tol: float = 1e-12,
                 patience: int = 1):
        """
        Args:
            rel_tol: Relative tolerance for distortion change
            abs_tol: Absolute tolerance for distortion change
            patience: Number of iterations to wait before convergence
        """
        super().__init__()
        self.rel_tol = rel_tol
        self.abs_tol = abs_tol
        self.patience = patience
        self._prev_distortion = None
        self._stable_count = 0

    def check(self, current_state: Dict[str, Any]) -> bool:
        """Check if the distortion has stabilized."""
        current = current_state['average_distortion']

        if self._prev_distortion is None:
            self._prev_distortion = current
            return False

        abs_change = abs(current - self._prev_distortion)
        if abs(self._prev_distortion) > 1e-10:
            rel_change = abs_change / abs(self._prev_distortion)
        else:
            rel_change = abs_change

        self.history.append({
            'iteration': current_state.get('iteration', len(self.history)),
            'average_distortion': current,
            'abs_change': abs_change,
            'rel_change': rel_change
        })

        if abs_change < self.abs_tol or rel_change < self.rel_tol:
            self._stable_count += 1
            converged = self._stable_count >= self.patience
        else:
            self._stable_count = 0
            converged = False

        self._prev_distortion = current
        return converged

    def reset(self):
        super().reset()
        self._prev_distortion = None
        self._stable_count = 0


class CombinedCriterion(ConvergenceCriterion):
    """Combine multiple convergence criteria with AND/OR logic."""

    def __init__(self, criteria: list[ConvergenceCriterion],
                 mode: str = 'any'):
        """
        Args:
            criteria: List of convergence criteria
            mode: 'any' (OR) or 'all' (AND)
        """
        super().__init__()
        self.criteria = criteria
        self.mode = mode

        if mode not in ['any', 'all']:
            raise ValueError(f"Mode must be 'any' or 'all', got {mode}")

    def check(self, current_state: Dict[str, Any]) -> bool:
        """Check all criteria and combine results."""
        results = [criterion.check(current_state) for criterion in self.criteria]

        if self.mode == 'any':
            converged = any(results)
        else:
            converged = all(results)

        self.history.append({
            'iteration': current_state.get('iteration', len(self.history)),
            'individual_results': results,
            'converged': converged
        })

        return converged

    def reset(self):
        """Reset all sub-criteria."""
        super().reset()
        for criterion in self.criteria:
            criterion.reset()


class MaxIterations(ConvergenceCriterion):
    """Never converges; the run ends at the iteration cap."""

    def check(self, current_state: Dict[str, Any]) -> bool:
        return False
