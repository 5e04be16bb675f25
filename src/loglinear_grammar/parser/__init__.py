"""Reference grammar, parse charts and label projections.

Provides the collaborators the anchored rule scorer consumes:
- Span scorers (additive log-space rule scores)
- Grammar with unary closure
- Triangular parse charts and a log-space CKY inside/outside builder
- Fine-to-coarse label projection
"""

from .span_scorer import SpanScorer, IdentityScorer, SumScorer, IDENTITY
from .grammar import Grammar, UnaryClosure
from .chart import ParseChart
from .chart_builder import ChartBuilder
from .projections import ProjectionIndexer

__all__ = [
    'SpanScorer',
    'IdentityScorer',
    'SumScorer',
    'IDENTITY',
    'Grammar',
    'UnaryClosure',
    'ParseChart',
    'ChartBuilder',
    'ProjectionIndexer'
]
