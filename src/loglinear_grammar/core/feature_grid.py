"""Sparse context -> decision -> feature-id table for log-linear models."""

from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, Iterator, List, Sequence, Tuple

import numpy as np

from .index import Index

EMPTY_FEATURES = np.zeros(0, dtype=np.int64)


@dataclass
class FeatureGrid:
    """Indexed feature table.

    Attributes
    ----------
    context_index : Index
        Contexts in enumeration order
    decision_index : Index
        Decisions in first-seen order across contexts
    feature_index : Index
        Features in first-seen order across (context, decision) pairs
    decisions_for_context : List[np.ndarray]
        Sorted decision ids valid in each context
    rows : List[Dict[int, np.ndarray]]
        Per context, decision id -> sorted feature ids. Decisions without
        features have no entry.
    """
    context_index: Index
    decision_index: Index
    feature_index: Index
    decisions_for_context: List[np.ndarray]
    rows: List[Dict[int, np.ndarray]]

    @classmethod
    def build(cls,
              contexts: Iterable[Hashable],
              decisions_for_context: Callable[[Hashable], Iterable[Hashable]],
              features: Callable[[Hashable, Hashable], Sequence[Hashable]]) -> 'FeatureGrid':
        """Index contexts, decisions and features and assemble the grid.

        Parameters
        ----------
        contexts : Iterable
            All contexts, in a stable order
        decisions_for_context : Callable
            Valid decisions for a context
        features : Callable
            Features active on ``(decision, context)``

        Returns
        -------
        FeatureGrid
            Grid with sorted decision and feature ids
        """
        context_index = Index(contexts)
        decision_index: Index = Index()
        feature_index: Index = Index()

        indexed_decisions = []
        for context, _ in context_index.pairs():
            ids = [decision_index.index(d) for d in decisions_for_context(context)]
            indexed_decisions.append(np.array(sorted(set(ids)), dtype=np.int64))

        rows: List[Dict[int, np.ndarray]] = []
        for c_id, decision_ids in enumerate(indexed_decisions):
            context = context_index.get(c_id)
            row: Dict[int, np.ndarray] = {}
            for d_id in decision_ids:
                decision = decision_index.get(int(d_id))
                feats = features(decision, context)
                if len(feats) > 0:
                    f_ids = [feature_index.index(f) for f in feats]
                    row[int(d_id)] = np.sort(np.array(f_ids, dtype=np.int64), kind="stable")
            rows.append(row)

        return cls(context_index=context_index,
                   decision_index=decision_index,
                   feature_index=feature_index,
                   decisions_for_context=indexed_decisions,
                   rows=rows)

    @property
    def n_contexts(self) -> int:
        return len(self.context_index)

    @property
    def n_decisions(self) -> int:
        return len(self.decision_index)

    @property
    def n_features(self) -> int:
        return len(self.feature_index)

    def features_for(self, context_id: int, decision_id: int) -> np.ndarray:
        """Feature ids for an entry; empty when the decision is unscored."""
        return self.rows[context_id].get(decision_id, EMPTY_FEATURES)

    def scored_decisions(self, context_id: int) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield ``(decision_id, feature_ids)`` in ascending decision order."""
        row = self.rows[context_id]
        for d_id in sorted(row):
            yield d_id, row[d_id]
