"""Bijection between hashable domain keys and dense integer ids."""

from typing import Dict, Generic, Hashable, Iterable, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)


class Index(Generic[K]):
    """Insertion-ordered registry assigning stable ids to keys.

    Ids are handed out monotonically in first-seen order, so two indexes fed
    the same key sequence assign the same ids. Keys are only looked up again
    for presentation; all internal tables are addressed by id.

    Parameters
    ----------
    keys : Optional[Iterable[K]]
        Keys to index immediately, in order

    Examples
    --------
    >>> idx = Index(['a', 'b'])
    >>> idx.index('c')
    2
    >>> idx.index('a')
    0
    >>> idx.get(1)
    'b'
    """

    def __init__(self, keys: Optional[Iterable[K]] = None):
        self._ids: Dict[K, int] = {}
        self._keys: List[K] = []
        if keys is not None:
            for key in keys:
                self.index(key)

    def index(self, key: K) -> int:
        """Return the id of ``key``, assigning the next id on first occurrence."""
        existing = self._ids.get(key)
        if existing is not None:
            return existing
        new_id = len(self._keys)
        self._ids[key] = new_id
        self._keys.append(key)
        return new_id

    def lookup(self, key: K) -> int:
        """Return the id of ``key`` or -1 if it was never indexed."""
        return self._ids.get(key, -1)

    def get(self, i: int) -> K:
        """Inverse lookup from id to key."""
        if i < 0 or i >= len(self._keys):
            raise IndexError(f"Id {i} out of range for index of size {len(self._keys)}")
        return self._keys[i]

    def pairs(self) -> Iterator[Tuple[K, int]]:
        """Yield ``(key, id)`` in id order."""
        return ((key, i) for i, key in enumerate(self._keys))

    @property
    def size(self) -> int:
        return len(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._ids

    def __iter__(self) -> Iterator[K]:
        return iter(self._keys)

    def __repr__(self) -> str:
        preview = ", ".join(repr(k) for k in self._keys[:5])
        suffix = ", ..." if len(self._keys) > 5 else ""
        return f"Index([{preview}{suffix}])"
