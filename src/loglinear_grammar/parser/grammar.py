"""Log-space context-free grammar with precomputed unary closure.

Rules are given over arbitrary hashable labels; they are indexed once and all
lookups afterwards are by label id.
"""

import warnings
from typing import Dict, Hashable, Iterable, Iterator, List, Mapping, Tuple

import numpy as np
from scipy import linalg

from ..core.index import Index
from ..core.numerics import NEG_INF, log_sum_pair


class Grammar:
    """Binary/unary grammar with a lexicon of preterminal tags.

    Parameters
    ----------
    root : Hashable
        Root label; always gets id 0
    binary_rules : Iterable[Tuple[parent, left, right, log_score]]
        Binary productions
    unary_rules : Iterable[Tuple[parent, child, log_score]]
        Unary productions between labels
    lexicon : Iterable[Tuple[tag, word, log_score]]
        Tag emissions; every tag appearing here is a preterminal

    Examples
    --------
    >>> g = Grammar('S', [('S', 'A', 'B', 0.0)], [], [('A', 'a', 0.0), ('B', 'b', 0.0)])
    >>> g.label_index.get(0)
    'S'
    >>> g.is_preterminal(g.label_index.lookup('A'))
    True
    """

    def __init__(self,
                 root: Hashable,
                 binary_rules: Iterable[Tuple[Hashable, Hashable, Hashable, float]],
                 unary_rules: Iterable[Tuple[Hashable, Hashable, float]],
                 lexicon: Iterable[Tuple[Hashable, Hashable, float]]):
        self.label_index: Index = Index([root])
        self.root = root
        self.root_index = 0

        self._binary_by_parent: Dict[int, Dict[int, Dict[int, float]]] = {}
        for parent, left, right, score in binary_rules:
            p, b, c = (self.label_index.index(x) for x in (parent, left, right))
            by_left = self._binary_by_parent.setdefault(p, {}).setdefault(b, {})
            by_left[c] = log_sum_pair(by_left.get(c, NEG_INF), float(score))

        self.unary_rules: List[Tuple[int, int, float]] = []
        for parent, child, score in unary_rules:
            p, c = self.label_index.index(parent), self.label_index.index(child)
            self.unary_rules.append((p, c, float(score)))

        self._lexicon: Dict[Hashable, Dict[int, float]] = {}
        self._preterminals = set()
        for tag, word, score in lexicon:
            t = self.label_index.index(tag)
            self._preterminals.add(t)
            tags = self._lexicon.setdefault(word, {})
            tags[t] = log_sum_pair(tags.get(t, NEG_INF), float(score))

    @property
    def n_labels(self) -> int:
        return len(self.label_index)

    def is_preterminal(self, label: int) -> bool:
        return label in self._preterminals

    def binary_rules_by_parent(self, parent: int) -> Iterator[Tuple[int, Mapping[int, float]]]:
        """Yield ``(left, {right: log_score})`` for every binary rule of ``parent``."""
        return iter(self._binary_by_parent.get(parent, {}).items())

    def binary_rules(self) -> Iterator[Tuple[int, int, int, float]]:
        """Yield every binary rule as ``(parent, left, right, log_score)``."""
        for parent, by_left in self._binary_by_parent.items():
            for left, by_right in by_left.items():
                for right, score in by_right.items():
                    yield parent, left, right, score

    def tags_for_word(self, word: Hashable) -> Mapping[int, float]:
        """``{tag: log_score}`` for a word; empty for unknown words."""
        return self._lexicon.get(word, {})

    def __repr__(self) -> str:
        return (f"Grammar(root={self.root!r}, labels={self.n_labels}, "
                f"binary={sum(1 for _ in self.binary_rules())}, unary={len(self.unary_rules)})")


class UnaryClosure:
    """Reflexive-transitive closure of a grammar's unary rules.

    The closure score of (parent, child) is the log of the total probability
    of all unary chains rewriting ``parent`` into ``child``, computed as
    ``(I - U)^-1`` in probability space. Every label reaches itself.

    Parameters
    ----------
    grammar : Grammar
        Grammar whose unary rules are closed
    """

    def __init__(self, grammar: Grammar):
        n = grammar.n_labels
        transitions = np.zeros((n, n))
        for parent, child, score in grammar.unary_rules:
            if parent != child:
                transitions[parent, child] += np.exp(score)

        system = np.eye(n) - transitions
        try:
            closure = linalg.inv(system)
        except linalg.LinAlgError:
            warnings.warn("Singular unary system (unary cycles with mass >= 1), using pseudoinverse")
            closure = linalg.pinv(system)

        self._from_parent: List[List[Tuple[int, float]]] = [[] for _ in range(n)]
        self._from_child: List[List[Tuple[int, float]]] = [[] for _ in range(n)]
        for parent in range(n):
            for child in range(n):
                prob = closure[parent, child]
                if prob > 0:
                    score = float(np.log(prob))
                    self._from_parent[parent].append((child, score))
                    self._from_child[child].append((parent, score))

    def close_from_parent(self, parent: int) -> List[Tuple[int, float]]:
        """``(child, log_score)`` pairs reachable from ``parent``."""
        return self._from_parent[parent]

    def close_from_child(self, child: int) -> List[Tuple[int, float]]:
        """``(parent, log_score)`` pairs that rewrite into ``child``."""
        return self._from_child[child]
