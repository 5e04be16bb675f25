"""Small-int-keyed directories with interchangeable dense and sparse backends.

Expected counts and similar per-context tables are keyed by small integer ids
but are often very sparse. ``make_directory`` picks a backend from the fill
ratio; callers only use the ``IntDirectory`` interface.
"""

from abc import ABC, abstractmethod
from typing import Iterator, Mapping, Tuple

import numpy as np

DEFAULT_DENSE_THRESHOLD = 0.25


class IntDirectory(ABC):
    """Read-only map from ids in ``[0, size)`` to floats with a default of 0."""

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Directory size must be non-negative, got {size}")
        self.size = size

    @abstractmethod
    def get(self, key: int) -> float:
        """Value stored under ``key`` (0.0 when absent)."""

    @abstractmethod
    def active_items(self) -> Iterator[Tuple[int, float]]:
        """Yield ``(key, value)`` for nonzero entries in ascending key order."""

    @property
    @abstractmethod
    def nnz(self) -> int:
        """Number of nonzero entries."""

    def total(self) -> float:
        return float(sum(value for _, value in self.active_items()))

    def to_dense(self) -> np.ndarray:
        out = np.zeros(self.size)
        for key, value in self.active_items():
            out[key] = value
        return out

    def __getitem__(self, key: int) -> float:
        if key < 0 or key >= self.size:
            raise IndexError(f"Key {key} out of range for directory of size {self.size}")
        return self.get(key)

    def __len__(self) -> int:
        return self.size


class DenseDirectory(IntDirectory):
    """Backend storing every slot in a numpy array."""

    def __init__(self, values: np.ndarray):
        values = np.asarray(values, dtype=float)
        super().__init__(values.shape[0])
        self._values = values

    def get(self, key: int) -> float:
        return float(self._values[key])

    def active_items(self) -> Iterator[Tuple[int, float]]:
        for key in np.flatnonzero(self._values):
            yield int(key), float(self._values[key])

    @property
    def nnz(self) -> int:
        return int(np.count_nonzero(self._values))


class SparseDirectory(IntDirectory):
    """Backend storing sorted ``(key, value)`` pairs."""

    def __init__(self, size: int, keys: np.ndarray, values: np.ndarray):
        super().__init__(size)
        keys = np.asarray(keys, dtype=np.int64)
        values = np.asarray(values, dtype=float)
        if keys.shape != values.shape:
            raise ValueError("Keys and values must have the same shape")

        order = np.argsort(keys, kind="stable")
        self._keys = keys[order]
        self._values = values[order]
        if self._keys.size and (self._keys[0] < 0 or self._keys[-1] >= size):
            raise ValueError(f"Keys out of range for directory of size {size}")

    def get(self, key: int) -> float:
        pos = int(np.searchsorted(self._keys, key))
        if pos < self._keys.size and self._keys[pos] == key:
            return float(self._values[pos])
        return 0.0

    def active_items(self) -> Iterator[Tuple[int, float]]:
        for key, value in zip(self._keys, self._values):
            if value != 0.0:
                yield int(key), float(value)

    @property
    def nnz(self) -> int:
        return int(np.count_nonzero(self._values))


def make_directory(mapping: Mapping[int, float],
                   size: int,
                   dense_threshold: float = DEFAULT_DENSE_THRESHOLD) -> IntDirectory:
    """Encode an id-keyed mapping, choosing the backend by fill ratio.

    Parameters
    ----------
    mapping : Mapping[int, float]
        Entries to store
    size : int
        Number of addressable ids
    dense_threshold : float, default=0.25
        Minimum ``len(mapping) / size`` at which the dense backend is used

    Returns
    -------
    IntDirectory
        ``DenseDirectory`` or ``SparseDirectory``
    """
    fill = len(mapping) / size if size > 0 else 0.0
    if size > 0 and fill >= dense_threshold:
        values = np.zeros(size)
        for key, value in mapping.items():
            values[key] = value
        return DenseDirectory(values)

    keys = np.fromiter(mapping.keys(), dtype=np.int64, count=len(mapping))
    values = np.fromiter(mapping.values(), dtype=float, count=len(mapping))
    return SparseDirectory(size, keys, values)
