"""Additive log-space scorers over anchored rules.

A span scorer contributes an extra log-score to every lexical, unary and
binary rule application at a given position. Parsers add these scores to the
grammar's rule scores; ``-inf`` prunes the application.
"""


class SpanScorer:
    """Base scorer. The default implementation scores everything 0."""

    def score_lexical(self, begin: int, end: int, tag: int) -> float:
        return 0.0

    def score_unary_rule(self, begin: int, end: int, parent: int, child: int) -> float:
        return 0.0

    def score_binary_rule(self, begin: int, split: int, end: int,
                          parent: int, left_child: int, right_child: int) -> float:
        return 0.0


class IdentityScorer(SpanScorer):
    """Scorer that leaves every rule score unchanged."""

    def __repr__(self) -> str:
        return "IdentityScorer()"


IDENTITY = IdentityScorer()


class SumScorer(SpanScorer):
    """Sum of two scorers."""

    def __init__(self, first: SpanScorer, second: SpanScorer):
        self.first = first
        self.second = second

    def score_lexical(self, begin, end, tag):
        return self.first.score_lexical(begin, end, tag) + self.second.score_lexical(begin, end, tag)

    def score_unary_rule(self, begin, end, parent, child):
        return (self.first.score_unary_rule(begin, end, parent, child)
                + self.second.score_unary_rule(begin, end, parent, child))

    def score_binary_rule(self, begin, split, end, parent, left_child, right_child):
        return (self.first.score_binary_rule(begin, split, end, parent, left_child, right_child)
                + self.second.score_binary_rule(begin, split, end, parent, left_child, right_child))
