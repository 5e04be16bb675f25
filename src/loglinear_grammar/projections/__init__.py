"""Anchored rule scorers built from inside/outside posteriors."""

from .anchored import AnchoredRuleScorer, AnchoredRuleScorerFactory, ParseFailureError
from .batch import ProjectionResult, project_corpus

__all__ = [
    'AnchoredRuleScorer',
    'AnchoredRuleScorerFactory',
    'ParseFailureError',
    'ProjectionResult',
    'project_corpus'
]
