"""Per-context normalized log-probabilities from feature weights.

For every context c and scored decision d the unnormalized score is the plain
sum of the weights of the features active on (c, d); each context row is then
log-normalized. Decisions without an entry in the feature grid are never
scored and stay at negative infinity.
"""

from typing import Dict, Hashable

import numpy as np

from .feature_grid import FeatureGrid
from .numerics import NEG_INF, log_normalize


def sum_weights(feature_ids: np.ndarray, weights: np.ndarray) -> float:
    """Linear score of one (context, decision) entry."""
    total = 0.0
    for f in feature_ids:
        total += weights[f]
    return total


def compute_log_thetas(grid: FeatureGrid, weights: np.ndarray) -> np.ndarray:
    """Compute the log-theta matrix for ``weights``.

    Parameters
    ----------
    grid : FeatureGrid
        Indexed feature table
    weights : np.ndarray, shape (n_features,)
        Feature weights

    Returns
    -------
    np.ndarray, shape (n_contexts, n_decisions)
        Row-normalized log-probabilities. Rows of contexts without any scored
        decision are entirely ``-inf``.
    """
    weights = np.asarray(weights, dtype=float)
    if weights.shape[0] != grid.n_features:
        raise ValueError(f"weights must have length {grid.n_features}, got {weights.shape[0]}")

    thetas = np.full((grid.n_contexts, grid.n_decisions), NEG_INF)
    for c_id in range(grid.n_contexts):
        for d_id, feature_ids in grid.scored_decisions(c_id):
            thetas[c_id, d_id] = sum_weights(feature_ids, weights)
        thetas[c_id] = log_normalize(thetas[c_id])
    return thetas


def decode_log_thetas(grid: FeatureGrid, thetas: np.ndarray) -> Dict[Hashable, Dict[Hashable, float]]:
    """Convert the theta matrix to ``{context: {decision: log_prob}}``.

    Every valid decision of a context is present; unscored ones map to ``-inf``.
    """
    decoded: Dict[Hashable, Dict[Hashable, float]] = {}
    for context, c_id in grid.context_index.pairs():
        decoded[context] = {
            grid.decision_index.get(int(d_id)): float(thetas[c_id, d_id])
            for d_id in grid.decisions_for_context[c_id]
        }
    return decoded
