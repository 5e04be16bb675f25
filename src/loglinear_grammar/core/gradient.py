"""Expected complete log-likelihood and its gradient for the M-step.

The gradient of Σ_{c,d} e(c,d) log θ(c,d) with respect to the weights is

    Σ_{c,d} e(c,d) (f(c,d) - Σ_{d'} θ(c,d') f(c,d'))
  = Σ_{c,d} (e(c,d) - e(c,*) θ(c,d)) f(c,d)
  = Σ_{c,d} margin(c,d) f(c,d)

with e(c,*) the total expected count of context c.
"""

import math
from typing import Hashable, List, Mapping, Optional, Tuple

import numpy as np

from .directory import DEFAULT_DENSE_THRESHOLD, IntDirectory, make_directory
from .feature_grid import FeatureGrid
from .thetas import compute_log_thetas

ExpectedCounts = Mapping[Hashable, Mapping[Hashable, float]]


def encode_counts(grid: FeatureGrid,
                  counts: ExpectedCounts,
                  dense_threshold: float = DEFAULT_DENSE_THRESHOLD
                  ) -> Tuple[List[Optional[IntDirectory]], np.ndarray]:
    """Encode ``{context: {decision: count}}`` against the grid's indexes.

    Returns
    -------
    Tuple[List[Optional[IntDirectory]], np.ndarray]
        One directory per context id (``None`` for contexts without counts)
        and the per-context totals e(c,*)
    """
    encoded: List[Optional[IntDirectory]] = [None] * grid.n_contexts
    totals = np.zeros(grid.n_contexts)

    for context, row in counts.items():
        c_id = grid.context_index.lookup(context)
        if c_id < 0:
            raise ValueError(f"Expected counts reference unknown context {context!r}")

        valid = set(grid.decisions_for_context[c_id].tolist())
        by_id = {}
        for decision, count in row.items():
            if count < 0:
                raise ValueError(f"Negative expected count {count} for ({context!r}, {decision!r})")
            d_id = grid.decision_index.lookup(decision)
            if d_id < 0:
                raise ValueError(f"Expected counts reference unknown decision {decision!r}")
            if d_id not in valid:
                raise ValueError(f"Decision {decision!r} is not valid in context {context!r}")
            by_id[d_id] = by_id.get(d_id, 0.0) + float(count)

        directory = make_directory(by_id, grid.n_decisions, dense_threshold)
        encoded[c_id] = directory
        totals[c_id] = directory.total()

    return encoded, totals


def compute_gradient(grid: FeatureGrid,
                     log_thetas: np.ndarray,
                     counts: List[Optional[IntDirectory]],
                     totals: np.ndarray) -> Tuple[float, np.ndarray]:
    """Negated expected complete log-likelihood and its gradient.

    Parameters
    ----------
    grid : FeatureGrid
        Indexed feature table
    log_thetas : np.ndarray, shape (n_contexts, n_decisions)
        Current log-thetas
    counts : List[Optional[IntDirectory]]
        Encoded expected counts per context
    totals : np.ndarray, shape (n_contexts,)
        Total expected count per context

    Returns
    -------
    Tuple[float, np.ndarray]
        ``(-loglik, -gradient)``, ready for a minimizer
    """
    feature_grad = np.zeros(grid.n_features)
    log_prob = 0.0

    for c_id, row in enumerate(counts):
        if row is None:
            continue
        total = totals[c_id]
        log_total = math.log(total) if total > 0 else float("-inf")
        c_theta = log_thetas[c_id]

        for d_id, e in row.active_items():
            l_t = c_theta[d_id]
            log_prob += e * l_t
            margin = e - math.exp(log_total + l_t)

            for f in grid.features_for(c_id, d_id):
                feature_grad[f] += margin

    return -log_prob, -feature_grad


class MStepObjective:
    """Differentiable M-step objective for fixed expected counts.

    The counts are encoded once; each evaluation recomputes the thetas from
    the candidate weights.

    Parameters
    ----------
    grid : FeatureGrid
        Indexed feature table
    expected_counts : Mapping
        ``{context: {decision: count}}`` from the E-step
    dense_threshold : float
        Fill ratio above which counts are stored densely
    """

    def __init__(self,
                 grid: FeatureGrid,
                 expected_counts: ExpectedCounts,
                 dense_threshold: float = DEFAULT_DENSE_THRESHOLD):
        self.grid = grid
        self.encoded_counts, self.encoded_totals = encode_counts(grid, expected_counts, dense_threshold)

    def calculate(self, weights: np.ndarray) -> Tuple[float, np.ndarray]:
        log_thetas = compute_log_thetas(self.grid, weights)
        return compute_gradient(self.grid, log_thetas, self.encoded_counts, self.encoded_totals)

    def value(self, weights: np.ndarray) -> float:
        return self.calculate(weights)[0]

    def __call__(self, weights: np.ndarray) -> Tuple[float, np.ndarray]:
        return self.calculate(weights)
