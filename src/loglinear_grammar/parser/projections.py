"""Projection of fine grammar labels onto a coarser label set."""

from typing import Callable, Hashable, Optional

import numpy as np

from ..core.index import Index


class ProjectionIndexer:
    """Surjective map from fine label ids to coarse label ids.

    Parameters
    ----------
    fine_index : Index
        Fine labels
    coarse_index : Optional[Index]
        Coarse labels. When omitted it is built from the projected fine labels
        in fine-id order.
    project_label : Callable
        Maps a fine label to its coarse label

    Examples
    --------
    >>> fine = Index(['NP^S', 'NP^VP', 'VP'])
    >>> proj = ProjectionIndexer(fine, project_label=lambda l: l.split('^')[0])
    >>> [proj.project(i) for i in range(3)]
    [0, 0, 1]
    """

    def __init__(self,
                 fine_index: Index,
                 coarse_index: Optional[Index] = None,
                 project_label: Callable[[Hashable], Hashable] = lambda label: label):
        self.fine_index = fine_index
        build_coarse = coarse_index is None
        self.coarse_index = Index() if build_coarse else coarse_index

        projections = np.empty(len(fine_index), dtype=np.int64)
        for label, fine_id in fine_index.pairs():
            coarse = project_label(label)
            if build_coarse:
                coarse_id = self.coarse_index.index(coarse)
            else:
                coarse_id = self.coarse_index.lookup(coarse)
                if coarse_id < 0:
                    raise ValueError(f"Label {label!r} projects to unknown coarse label {coarse!r}")
            projections[fine_id] = coarse_id
        self._projections = projections

    @classmethod
    def identity(cls, index: Index) -> 'ProjectionIndexer':
        return cls(index, index)

    def project(self, fine_label: int) -> int:
        return int(self._projections[fine_label])

    @property
    def n_coarse(self) -> int:
        return len(self.coarse_index)

    def refinements(self, coarse_label: int) -> np.ndarray:
        """Fine label ids projecting onto ``coarse_label``."""
        return np.flatnonzero(self._projections == coarse_label)
