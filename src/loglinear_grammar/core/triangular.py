"""Triangular addressing of (begin, end) spans over a sequence."""

from typing import Callable, List, TypeVar

T = TypeVar("T")


class TriangularArray:
    """Helpers for storing one slot per span ``0 <= begin <= end <= n``.

    Spans are laid out by ``end``: all spans ending at 0, then all spans
    ending at 1, and so on, which gives ``(n + 1) * (n + 2) / 2`` slots for a
    sequence of length ``n``.

    Examples
    --------
    >>> TriangularArray.index(0, 0)
    0
    >>> TriangularArray.index(0, 1), TriangularArray.index(1, 1)
    (1, 2)
    >>> TriangularArray.size(2)
    6
    """

    @staticmethod
    def index(begin: int, end: int) -> int:
        if begin < 0 or begin > end:
            raise ValueError(f"Invalid span ({begin}, {end})")
        return end * (end + 1) // 2 + begin

    @staticmethod
    def size(n: int) -> int:
        """Number of slots for a sequence of length ``n``."""
        return (n + 1) * (n + 2) // 2

    @staticmethod
    def raw(n: int, fill: Callable[[], T]) -> List[T]:
        """Allocate a flat list with a fresh ``fill()`` value in every slot."""
        return [fill() for _ in range(TriangularArray.size(n))]
