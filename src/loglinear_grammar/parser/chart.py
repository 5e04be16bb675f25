"""Triangular log-space parse chart."""

from typing import Dict, Iterable, List

from ..core.numerics import NEG_INF, log_sum_pair
from ..core.triangular import TriangularArray


class ParseChart:
    """Per-span ``{label: log_score}`` tables for a sentence of length ``length``.

    Only labels that have been entered with a finite score are stored; every
    other lookup is ``-inf``.
    """

    def __init__(self, length: int):
        if length < 0:
            raise ValueError(f"Chart length must be non-negative, got {length}")
        self.length = length
        self._cells: List[Dict[int, float]] = TriangularArray.raw(length, dict)

    def label_score(self, begin: int, end: int, label: int) -> float:
        return self._cells[TriangularArray.index(begin, end)].get(label, NEG_INF)

    def entered_labels(self, begin: int, end: int) -> List[int]:
        """Labels with a finite score over ``(begin, end)``, in ascending id order."""
        return sorted(self._cells[TriangularArray.index(begin, end)])

    def enter(self, begin: int, end: int, label: int, score: float) -> None:
        """Log-sum ``score`` into the cell; non-finite scores are ignored."""
        if score == NEG_INF or score != score:
            return
        cell = self._cells[TriangularArray.index(begin, end)]
        cell[label] = log_sum_pair(cell.get(label, NEG_INF), score)

    def cell(self, begin: int, end: int) -> Dict[int, float]:
        """Read-only view of one span's scores."""
        return dict(self._cells[TriangularArray.index(begin, end)])

    def spans(self) -> Iterable[tuple]:
        """All ``(begin, end)`` spans with ``end > begin``, shortest first."""
        for diff in range(1, self.length + 1):
            for begin in range(0, self.length - diff + 1):
                yield begin, begin + diff

    def __len__(self) -> int:
        return self.length
