"""Log-space arithmetic shared by the EM trainer and the chart code.

All functions follow the convention that a log-sum over an empty or an
all negative-infinity input is negative infinity, never NaN.
"""

import math
from typing import Iterable, Optional, Union

import numpy as np

NEG_INF = float("-inf")


def log_sum(values: Union[Iterable[float], np.ndarray],
            max_value: Optional[float] = None) -> float:
    """Numerically stable log(Σ exp(v)).

    Parameters
    ----------
    values : iterable of float or np.ndarray
        Log-space values to accumulate
    max_value : Optional[float]
        Precomputed maximum of ``values``. Computed if not given.

    Returns
    -------
    float
        ``max + log Σ exp(v - max)``, or ``-inf`` if there is nothing finite to sum

    Examples
    --------
    >>> round(log_sum([np.log(0.25), np.log(0.75)]), 12)
    0.0
    >>> log_sum([])
    -inf
    """
    arr = np.asarray(values if isinstance(values, np.ndarray) else list(values), dtype=float)
    if arr.size == 0:
        return NEG_INF

    if max_value is None:
        max_value = float(np.max(arr))
    if max_value == NEG_INF:
        return NEG_INF
    if max_value == float("inf"):
        return max_value

    return float(max_value + np.log(np.sum(np.exp(arr - max_value))))


def log_sum_pair(a: float, b: float) -> float:
    """Two-argument log-sum used for in-place accumulation into charts."""
    if a == NEG_INF:
        return b
    if b == NEG_INF:
        return a
    if a < b:
        a, b = b, a
    return a + math.log1p(math.exp(b - a))


def log_normalize(row: np.ndarray) -> np.ndarray:
    """Normalize a row of log-scores over its finite entries.

    Entries that are ``-inf`` stay ``-inf``. A row with no finite entry is
    returned unchanged (it represents an impossible context).

    Parameters
    ----------
    row : np.ndarray, shape (n,)
        Unnormalized log-scores

    Returns
    -------
    np.ndarray, shape (n,)
        New array whose finite entries exponentiate and sum to 1
    """
    finite = np.isfinite(row)
    if not np.any(finite):
        return row.copy()

    present = row[finite]
    normalizer = log_sum(present, max_value=float(np.max(present)))
    result = np.full_like(row, NEG_INF, dtype=float)
    result[finite] = present - normalizer
    return result
