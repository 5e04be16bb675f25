"""Anchored rule posteriors projected onto a coarse label set.

Given inside and outside charts of a sentence, the posterior log-probability of
every lexical, unary and binary rule application is accumulated per span and
projected from fine to coarse labels. The resulting ``AnchoredRuleScorer`` is
an additive span scorer that can bias or prune later parses.
"""

import logging
from typing import Dict, Hashable, Sequence, Tuple

import numpy as np

from ..core.numerics import NEG_INF, log_sum_pair
from ..core.triangular import TriangularArray
from ..parser.chart import ParseChart
from ..parser.chart_builder import ChartBuilder
from ..parser.projections import ProjectionIndexer
from ..parser.span_scorer import IDENTITY, SpanScorer

logger = logging.getLogger(__name__)

# (span index, split - begin, parent) -> (left, right) -> score
BinaryTable = Dict[Tuple[int, int, int], Dict[Tuple[int, int], float]]
# (span index, parent) -> child -> score
UnaryTable = Dict[Tuple[int, int], Dict[int, float]]


class ParseFailureError(ValueError):
    """Raised when a sentence has no finite-probability parse."""

    def __init__(self, words: Sequence[Hashable], log_probability: float):
        self.words = list(words)
        self.log_probability = log_probability
        super().__init__(f"Couldn't parse {self.words} (log probability {log_probability})")

    def __reduce__(self):
        return (ParseFailureError, (self.words, self.log_probability))


class AnchoredRuleScorer(SpanScorer):
    """Immutable per-sentence posterior log-scores over coarse labels.

    Any combination that was never accumulated scores ``-inf``.
    """

    def __init__(self, lexical_scores: np.ndarray, unary_scores: UnaryTable, binary_scores: BinaryTable):
        lexical_scores = np.array(lexical_scores, dtype=float)
        lexical_scores.setflags(write=False)
        self._lexical = lexical_scores
        self._unary = {key: dict(row) for key, row in unary_scores.items()}
        self._binary = {key: dict(row) for key, row in binary_scores.items()}

    @property
    def length(self) -> int:
        return self._lexical.shape[0]

    def _in_sentence(self, begin: int, end: int) -> bool:
        return 0 <= begin < end <= self.length

    def score_lexical(self, begin: int, end: int, tag: int) -> float:
        if begin < 0 or begin >= self._lexical.shape[0] or tag < 0 or tag >= self._lexical.shape[1]:
            return NEG_INF
        return float(self._lexical[begin, tag])

    def score_unary_rule(self, begin: int, end: int, parent: int, child: int) -> float:
        if not self._in_sentence(begin, end):
            return NEG_INF
        row = self._unary.get((TriangularArray.index(begin, end), parent))
        if row is None:
            return NEG_INF
        return row.get(child, NEG_INF)

    def score_binary_rule(self, begin: int, split: int, end: int,
                          parent: int, left_child: int, right_child: int) -> float:
        if not (self._in_sentence(begin, end) and begin < split < end):
            return NEG_INF
        row = self._binary.get((TriangularArray.index(begin, end), split - begin, parent))
        if row is None:
            return NEG_INF
        return row.get((left_child, right_child), NEG_INF)

    def __repr__(self) -> str:
        return (f"AnchoredRuleScorer(length={self.length}, unary_cells={len(self._unary)}, "
                f"binary_cells={len(self._binary)})")


class AnchoredRuleScorerFactory:
    """Builds ``AnchoredRuleScorer`` instances from a chart builder.

    Parameters
    ----------
    parser : ChartBuilder
        Provides the grammar, its unary closure and inside/outside charts
    projections : ProjectionIndexer
        Fine (parser) labels to coarse (scorer) labels
    """

    def __init__(self, parser: ChartBuilder, projections: ProjectionIndexer):
        self.parser = parser
        self.projections = projections

    def make_span_scorer(self, words: Sequence[Hashable], scorer: SpanScorer = IDENTITY) -> AnchoredRuleScorer:
        """Parse ``words`` and build the posterior scorer for them.

        Raises
        ------
        ParseFailureError
            If the sentence log-probability is not finite
        """
        inside = self.parser.build_inside_chart(words, scorer)
        outside = self.parser.build_outside_chart(inside, scorer)

        sentence_log_prob = self.parser.sentence_log_probability(inside)
        if not np.isfinite(sentence_log_prob):
            raise ParseFailureError(words, sentence_log_prob)

        return self.build_span_scorer(inside, outside, sentence_log_prob, scorer)

    def build_span_scorer(self,
                          inside: ParseChart,
                          outside: ParseChart,
                          sentence_log_prob: float,
                          scorer: SpanScorer = IDENTITY) -> AnchoredRuleScorer:
        """Accumulate projected rule posteriors from precomputed charts.

        Parameters
        ----------
        inside, outside : ParseChart
            Charts of the same sentence
        sentence_log_prob : float
            Root inside score of the whole sentence
        scorer : SpanScorer
            Additive scorer the charts were built with

        Returns
        -------
        AnchoredRuleScorer
            Lexical, unary and binary posteriors over coarse labels
        """
        if not np.isfinite(sentence_log_prob):
            raise ValueError(f"Sentence log probability must be finite, got {sentence_log_prob}")

        grammar = self.parser.grammar
        closure = self.parser.unary_closure
        project = self.projections.project
        n = inside.length

        lexical_scores = np.full((n, self.projections.n_coarse), NEG_INF)
        unary_scores: UnaryTable = {}
        binary_scores: BinaryTable = {}

        for begin in range(n):
            end = begin + 1
            for label in inside.entered_labels(begin, end):
                if not grammar.is_preterminal(label):
                    continue
                score = (inside.label_score(begin, end, label) + outside.label_score(begin, end, label)
                         + scorer.score_lexical(begin, end, label) - sentence_log_prob)
                coarse = project(label)
                lexical_scores[begin, coarse] = log_sum_pair(lexical_scores[begin, coarse], score)

        for diff in range(1, n + 1):
            for begin in range(0, n - diff + 1):
                end = begin + diff
                index = TriangularArray.index(begin, end)

                for parent in inside.entered_labels(begin, end):
                    parent_score = outside.label_score(begin, end, parent)
                    if parent_score == NEG_INF:
                        continue
                    p_parent = project(parent)

                    for split in range(begin + 1, end):
                        for left, by_right in grammar.binary_rules_by_parent(parent):
                            left_score = inside.label_score(begin, split, left)
                            if left_score == NEG_INF:
                                continue
                            for right, rule_score in by_right.items():
                                score = (left_score + inside.label_score(split, end, right)
                                         + parent_score + rule_score
                                         + scorer.score_binary_rule(begin, split, end, parent, left, right)
                                         - sentence_log_prob)
                                if score == NEG_INF:
                                    continue
                                cell = binary_scores.setdefault((index, split - begin, p_parent), {})
                                key = (project(left), project(right))
                                cell[key] = log_sum_pair(cell.get(key, NEG_INF), score)

                    for child, rule_score in closure.close_from_parent(parent):
                        score = (rule_score + inside.label_score(begin, end, child) + parent_score
                                 + scorer.score_unary_rule(begin, end, parent, child) - sentence_log_prob)
                        if score == NEG_INF:
                            continue
                        cell = unary_scores.setdefault((index, p_parent), {})
                        p_child = project(child)
                        cell[p_child] = log_sum_pair(cell.get(p_child, NEG_INF), score)

        logger.debug("Built anchored scorer: %d words, %d unary cells, %d binary cells",
                     n, len(unary_scores), len(binary_scores))
        return AnchoredRuleScorer(lexical_scores, unary_scores, binary_scores)
