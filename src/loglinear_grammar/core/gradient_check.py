"""Finite-difference verification of analytic gradients."""

import logging
from typing import Callable, Optional

import numpy as np

from ..config.random_state import make_rng
from .optimizer import DiffFunction

logger = logging.getLogger(__name__)


def check_gradient(objective: DiffFunction,
                   x: np.ndarray,
                   epsilon: float = 1e-5,
                   rand_fraction: float = 1.0,
                   tolerance: float = 1e-4,
                   to_string: Optional[Callable[[int], str]] = None,
                   rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Compare an analytic gradient with central finite differences.

    Parameters
    ----------
    objective : DiffFunction
        Callable returning ``(value, gradient)``
    x : np.ndarray
        Point at which to check
    epsilon : float, default=1e-5
        Finite-difference step
    rand_fraction : float, default=1.0
        Fraction of coordinates to check, chosen at random
    tolerance : float, default=1e-4
        Relative error above which a coordinate is reported
    to_string : Optional[Callable[[int], str]]
        Names a coordinate in log messages (e.g. feature lookup)
    rng : Optional[np.random.Generator]
        Source of randomness for coordinate selection

    Returns
    -------
    np.ndarray
        Absolute difference between analytic and numerical derivative for
        every coordinate; unchecked coordinates are 0
    """
    x = np.asarray(x, dtype=float)
    if rng is None:
        rng = make_rng(stream="gradient_check")
    if to_string is None:
        to_string = str

    _, grad = objective(x)
    differences = np.zeros_like(x)

    for i in range(x.size):
        if rand_fraction < 1.0 and rng.random() >= rand_fraction:
            continue

        x_plus = x.copy()
        x_plus[i] += epsilon
        x_minus = x.copy()
        x_minus[i] -= epsilon

        numerical = (objective(x_plus)[0] - objective(x_minus)[0]) / (2 * epsilon)
        differences[i] = abs(grad[i] - numerical)

        scale = max(abs(grad[i]), abs(numerical), 1.0)
        if differences[i] / scale > tolerance:
            logger.warning("Gradient mismatch for %s: analytic=%.6g numerical=%.6g",
                           to_string(i), grad[i], numerical)

    return differences
