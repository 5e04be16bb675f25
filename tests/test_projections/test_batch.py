"""Tests for corpus projection on a worker pool."""

import pytest

from loglinear_grammar.config import Settings
from loglinear_grammar.parser import IDENTITY, ProjectionIndexer
from loglinear_grammar.projections import batch as batch_module
from loglinear_grammar.projections import AnchoredRuleScorer, AnchoredRuleScorerFactory, project_corpus


@pytest.fixture
def factory(unambiguous_grammar, unambiguous_builder):
    return AnchoredRuleScorerFactory(unambiguous_builder,
                                     ProjectionIndexer.identity(unambiguous_grammar.label_index))


@pytest.fixture
def corpus():
    return [['a', 'b'], ['a', 'zzz'], ['a', 'b'], ['b', 'a']]


class TestProjectCorpus:
    """Test suite for project_corpus."""

    def test_serial_results_in_input_order(self, factory, corpus):
        results = project_corpus(factory, corpus, serial=True)

        assert [r.position for r in results] == [0, 1, 2, 3]
        assert [r.words for r in results] == corpus

    def test_failures_get_identity_scorer(self, factory, corpus):
        results = project_corpus(factory, corpus)

        assert [r.ok for r in results] == [True, False, True, False]
        assert results[1].scorer is IDENTITY
        assert "zzz" in results[1].error
        assert isinstance(results[0].scorer, AnchoredRuleScorer)

    def test_thread_pool_matches_serial(self, factory, corpus):
        serial = project_corpus(factory, corpus, serial=True)
        parallel = project_corpus(factory, corpus, max_workers=3)

        assert [r.ok for r in parallel] == [r.ok for r in serial]
        assert [r.position for r in parallel] == [0, 1, 2, 3]
        assert parallel[0].scorer.score_binary_rule(0, 1, 2, 0, 1, 2) == \
            pytest.approx(serial[0].scorer.score_binary_rule(0, 1, 2, 0, 1, 2))

    @pytest.mark.slow
    def test_process_pool(self, factory, corpus):
        results = project_corpus(factory, corpus, max_workers=2, use_processes=True)
        assert [r.ok for r in results] == [True, False, True, False]

    def test_empty_corpus(self, factory):
        assert project_corpus(factory, [], max_workers=2) == []

    @pytest.mark.parametrize("max_workers", [1, 2])
    def test_unexpected_error_keeps_batch_going(self, factory, max_workers):
        class LookupFailing:
            def make_span_scorer(self, words):
                if words == ['boom']:
                    raise RuntimeError("grammar lookup failed")
                return factory.make_span_scorer(words)

        results = project_corpus(LookupFailing(), [['a', 'b'], ['boom'], ['a', 'b']],
                                 max_workers=max_workers)

        assert [r.ok for r in results] == [True, False, True]
        assert results[1].scorer is IDENTITY
        assert results[1].error == "grammar lookup failed"

    def test_settings_choose_the_pool(self, factory, corpus, monkeypatch):
        pools = []
        real_thread_pool = batch_module.ThreadPoolExecutor

        def recording(max_workers):
            pools.append(max_workers)
            return real_thread_pool(max_workers=max_workers)

        monkeypatch.setattr(batch_module, 'ThreadPoolExecutor', recording)
        project_corpus(factory, corpus, settings=Settings(n_workers=3))
        project_corpus(factory, corpus, max_workers=4, settings=Settings(n_workers=1))

        assert pools == [3]
