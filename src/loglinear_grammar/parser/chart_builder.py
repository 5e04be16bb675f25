"""Log-space CKY inside/outside charts under an additive span scorer.

The inside chart holds, for each span and label, the score of the label's node
after unary closure has been applied on top of it. The outside chart holds the
outside score of a label in its role as parent of a binary rule (or as a
preterminal), i.e. below the unary closure. With these conventions the
posterior of a binary rule is ``inside(b) + inside(c) + outside(p) + rule``.
"""

import logging
from typing import Dict, Hashable, List, Optional, Sequence

from ..core.numerics import NEG_INF, log_sum_pair
from ..core.triangular import TriangularArray
from .chart import ParseChart
from .grammar import Grammar, UnaryClosure
from .span_scorer import IDENTITY, SpanScorer

logger = logging.getLogger(__name__)


class ChartBuilder:
    """Builds inside and outside charts for a grammar.

    Parameters
    ----------
    grammar : Grammar
        Grammar to parse with
    unary_closure : Optional[UnaryClosure]
        Precomputed closure; computed from ``grammar`` when omitted
    """

    def __init__(self, grammar: Grammar, unary_closure: Optional[UnaryClosure] = None):
        self.grammar = grammar
        self.unary_closure = unary_closure if unary_closure is not None else UnaryClosure(grammar)
        self.root = grammar.root
        self._binary_rules = list(grammar.binary_rules())

    def build_inside_chart(self, words: Sequence[Hashable], scorer: SpanScorer = IDENTITY) -> ParseChart:
        n = len(words)
        inside = ParseChart(n)

        for begin, word in enumerate(words):
            end = begin + 1
            bottom = {}
            for tag, score in self.grammar.tags_for_word(word).items():
                total = score + scorer.score_lexical(begin, end, tag)
                if total != NEG_INF:
                    bottom[tag] = total
            self._close_upwards(inside, begin, end, bottom, scorer)

        for diff in range(2, n + 1):
            for begin in range(0, n - diff + 1):
                end = begin + diff
                bottom: Dict[int, float] = {}
                for parent, left, right, rule_score in self._binary_rules:
                    for split in range(begin + 1, end):
                        left_score = inside.label_score(begin, split, left)
                        if left_score == NEG_INF:
                            continue
                        right_score = inside.label_score(split, end, right)
                        if right_score == NEG_INF:
                            continue
                        total = (rule_score + left_score + right_score
                                 + scorer.score_binary_rule(begin, split, end, parent, left, right))
                        bottom[parent] = log_sum_pair(bottom.get(parent, NEG_INF), total)
                self._close_upwards(inside, begin, end, bottom, scorer)

        logger.debug("Inside chart for %d words, root score %s", n, self.sentence_log_probability(inside))
        return inside

    def _close_upwards(self, inside: ParseChart, begin: int, end: int,
                       bottom: Dict[int, float], scorer: SpanScorer) -> None:
        for child, child_score in bottom.items():
            for parent, closure_score in self.unary_closure.close_from_child(child):
                inside.enter(begin, end, parent,
                             closure_score + child_score + scorer.score_unary_rule(begin, end, parent, child))

    def build_outside_chart(self, inside: ParseChart, scorer: SpanScorer = IDENTITY) -> ParseChart:
        n = inside.length
        outside = ParseChart(n)
        if n == 0:
            return outside

        # outside scores above the unary closure, per span
        top: List[Dict[int, float]] = TriangularArray.raw(n, dict)
        top[TriangularArray.index(0, n)][self.grammar.root_index] = 0.0

        for diff in range(n, 0, -1):
            for begin in range(0, n - diff + 1):
                end = begin + diff
                for parent, parent_score in top[TriangularArray.index(begin, end)].items():
                    for child, closure_score in self.unary_closure.close_from_parent(parent):
                        if inside.label_score(begin, end, child) == NEG_INF:
                            continue
                        outside.enter(begin, end, child,
                                      parent_score + closure_score
                                      + scorer.score_unary_rule(begin, end, parent, child))

                if diff == 1:
                    continue

                for parent, parent_score in outside.cell(begin, end).items():
                    for left, by_right in self.grammar.binary_rules_by_parent(parent):
                        for right, rule_score in by_right.items():
                            for split in range(begin + 1, end):
                                left_inside = inside.label_score(begin, split, left)
                                right_inside = inside.label_score(split, end, right)
                                if left_inside == NEG_INF or right_inside == NEG_INF:
                                    continue
                                base = (parent_score + rule_score
                                        + scorer.score_binary_rule(begin, split, end, parent, left, right))
                                left_cell = top[TriangularArray.index(begin, split)]
                                left_cell[left] = log_sum_pair(left_cell.get(left, NEG_INF), base + right_inside)
                                right_cell = top[TriangularArray.index(split, end)]
                                right_cell[right] = log_sum_pair(right_cell.get(right, NEG_INF), base + left_inside)

        return outside

    def sentence_log_probability(self, inside: ParseChart) -> float:
        return inside.label_score(0, inside.length, self.grammar.root_index)
