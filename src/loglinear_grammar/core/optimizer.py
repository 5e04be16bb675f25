"""Quasi-Newton minimization of differentiable objectives.

Wraps ``scipy.optimize.minimize`` (L-BFGS-B) behind a small ``minimize(objective,
initial_point)`` interface so the EM driver does not depend on scipy directly.
"""

import logging
from typing import Callable, Protocol, Tuple

import numpy as np
from scipy import optimize

logger = logging.getLogger(__name__)

DiffFunction = Callable[[np.ndarray], Tuple[float, np.ndarray]]


class Minimizer(Protocol):
    """Anything that can minimize a ``(value, gradient)`` objective."""

    def minimize(self, objective: DiffFunction, initial_point: np.ndarray) -> np.ndarray:
        ...


class LBFGSMinimizer:
    """Limited-memory BFGS with an iteration cap.

    Parameters
    ----------
    max_iterations : int, default=90
        Maximum number of quasi-Newton iterations per call
    memory : int, default=5
        Number of correction pairs kept for the Hessian approximation
    tolerance : float, default=1e-6
        Projected gradient tolerance (``gtol``)
    """

    def __init__(self, max_iterations: int = 90, memory: int = 5, tolerance: float = 1e-6):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        if memory < 1:
            raise ValueError(f"memory must be positive, got {memory}")
        self.max_iterations = max_iterations
        self.memory = memory
        self.tolerance = tolerance
        self.last_result = None

    def minimize(self, objective: DiffFunction, initial_point: np.ndarray) -> np.ndarray:
        """Run L-BFGS from ``initial_point`` and return the final point."""
        x0 = np.asarray(initial_point, dtype=float).copy()
        if x0.size == 0:
            return x0

        result = optimize.minimize(
            objective,
            x0,
            jac=True,
            method="L-BFGS-B",
            options={
                "maxiter": self.max_iterations,
                "maxcor": self.memory,
                "gtol": self.tolerance,
            },
        )
        self.last_result = result

        if result.success:
            logger.debug("L-BFGS converged after %d iterations: f=%.6f", result.nit, result.fun)
        else:
            logger.debug("L-BFGS stopped after %d iterations (%s): f=%.6f",
                         result.nit, result.message, result.fun)

        return np.asarray(result.x, dtype=float)
