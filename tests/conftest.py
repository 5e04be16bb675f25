"""
Pytest configuration and shared fixtures for the loglinear-grammar test suite.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from loglinear_grammar.config import set_global_seed
from loglinear_grammar.core import FeaturizedEM
from loglinear_grammar.parser import ChartBuilder, Grammar, ProjectionIndexer


class CountModel(FeaturizedEM):
    """Fully observed model: the E-step returns fixed counts.

    Every (context, decision) pair gets its own indicator feature plus the
    extra features listed in ``shared``.
    """

    def __init__(self, decisions, counts, shared=None, dense_threshold=0.25):
        self._decisions = decisions
        self._counts = counts
        self._shared = shared or {}
        super().__init__(dense_threshold=dense_threshold)

    def all_contexts(self):
        return list(self._decisions)

    def decisions_for_context(self, context):
        return self._decisions[context]

    def features(self, decision, context):
        return [(context, decision)] + list(self._shared.get((context, decision), []))

    def expected_counts(self, log_thetas):
        marginal = 0.0
        for context, row in self._counts.items():
            for decision, count in row.items():
                marginal += count * log_thetas[context][decision]
        return marginal, self._counts


class RandomGrammarModel(FeaturizedEM):
    """Small random log-linear model with overlapping features."""

    def __init__(self, n_contexts=4, n_decisions=4, n_features=8, seed=0):
        rng = np.random.default_rng(seed)
        self._decisions = {
            f"c{c}": [f"d{d}" for d in range(n_decisions) if rng.random() < 0.8] or ["d0"]
            for c in range(n_contexts)
        }
        self._features = {}
        for context, decisions in self._decisions.items():
            for decision in decisions:
                k = int(rng.integers(1, 4))
                self._features[(context, decision)] = [
                    f"f{int(i)}" for i in rng.choice(n_features, size=k, replace=False)
                ]
        self._counts = {
            context: {d: float(rng.integers(0, 5)) for d in decisions}
            for context, decisions in self._decisions.items()
        }
        super().__init__()

    def all_contexts(self):
        return list(self._decisions)

    def decisions_for_context(self, context):
        return self._decisions[context]

    def features(self, decision, context):
        return self._features[(context, decision)]

    def expected_counts(self, log_thetas):
        return 0.0, self._counts


@pytest.fixture(scope="session")
def global_test_seed():
    """Set global random seed for all tests to ensure reproducibility."""
    seed = 42
    set_global_seed(seed)
    return seed


@pytest.fixture
def toy_model():
    """One context S with decisions a, b and observed counts {a: 3, b: 1}."""
    return CountModel({"S": ["a", "b"]}, {"S": {"a": 3.0, "b": 1.0}})


@pytest.fixture
def count_model():
    """Factory for ``CountModel`` instances."""
    return CountModel


@pytest.fixture
def random_models():
    """A handful of small random log-linear models."""
    return [RandomGrammarModel(n_contexts=1 + seed % 5,
                               n_decisions=2 + seed % 4,
                               n_features=3 + seed % 8,
                               seed=seed)
            for seed in range(6)]


@pytest.fixture
def lex_scores():
    return {'a': np.log(0.6), 'b': np.log(0.3), 'rule': np.log(0.9)}


@pytest.fixture
def unambiguous_grammar(lex_scores):
    """S -> A B with A -> a and B -> b."""
    return Grammar('S',
                   binary_rules=[('S', 'A', 'B', lex_scores['rule'])],
                   unary_rules=[],
                   lexicon=[('A', 'a', lex_scores['a']), ('B', 'b', lex_scores['b'])])


@pytest.fixture
def ambiguous_grammar():
    """Refined labels (X-1, X-2) over an ambiguous three-word language."""
    return Grammar('S',
                   binary_rules=[('S', 'NP-1', 'VP', np.log(0.5)),
                                 ('S', 'NP-2', 'VP', np.log(0.5)),
                                 ('VP', 'V', 'NP-1', np.log(0.7)),
                                 ('VP', 'V', 'NP-2', np.log(0.3)),
                                 ('NP-1', 'N', 'N', np.log(0.2))],
                   unary_rules=[('NP-1', 'N', np.log(0.8)),
                                ('NP-2', 'N', np.log(0.4))],
                   lexicon=[('N', 'dogs', np.log(0.5)),
                            ('N', 'cats', np.log(0.5)),
                            ('V', 'chase', 0.0)])


@pytest.fixture
def unambiguous_builder(unambiguous_grammar):
    return ChartBuilder(unambiguous_grammar)


@pytest.fixture
def coarse_projection(ambiguous_grammar):
    """Strip the ``-k`` refinement suffix."""
    return ProjectionIndexer(ambiguous_grammar.label_index,
                             project_label=lambda label: label.split('-')[0])


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark integration tests."""
    for item in items:
        if "integration" in item.nodeid or "end_to_end" in item.nodeid:
            item.add_marker(pytest.mark.integration)
