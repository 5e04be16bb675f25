"""Tests for the feature grid, log-thetas and the M-step gradient."""

import pytest
import numpy as np
from numpy.testing import assert_array_almost_equal, assert_array_equal

from loglinear_grammar.core import (
    NEG_INF,
    FeatureGrid,
    MStepObjective,
    check_gradient,
    compute_gradient,
    compute_log_thetas,
    decode_log_thetas,
    encode_counts,
)


def _grid(decisions, features):
    return FeatureGrid.build(list(decisions), lambda c: decisions[c], lambda d, c: features.get((c, d), []))


class TestFeatureGrid:
    """Test suite for FeatureGrid construction."""

    def test_indexes_and_sorted_ids(self):
        grid = _grid({'S': ['b', 'a'], 'T': ['a']},
                     {('S', 'b'): ['f2', 'f1'], ('S', 'a'): ['f1'], ('T', 'a'): ['f3']})

        assert grid.n_contexts == 2
        assert grid.n_decisions == 2
        assert grid.n_features == 3
        assert_array_equal(grid.decisions_for_context[0], [0, 1])
        b_id = grid.decision_index.lookup('b')
        assert list(grid.features_for(0, b_id)) == sorted(grid.features_for(0, b_id))

    def test_decision_without_features_is_not_stored(self):
        grid = _grid({'S': ['a', 'b']}, {('S', 'a'): ['f']})
        b_id = grid.decision_index.lookup('b')

        assert b_id not in grid.rows[0]
        assert grid.features_for(0, b_id).size == 0
        assert [d for d, _ in grid.scored_decisions(0)] == [grid.decision_index.lookup('a')]


class TestLogThetas:
    """Test suite for compute_log_thetas."""

    def test_rows_normalize(self, random_models):
        rng = np.random.default_rng(3)
        for model in random_models:
            weights = rng.normal(size=model.grid.n_features)
            thetas = compute_log_thetas(model.grid, weights)

            for c_id in range(model.grid.n_contexts):
                row = thetas[c_id]
                finite = np.isfinite(row)
                if finite.any():
                    assert np.exp(row[finite]).sum() == pytest.approx(1.0)
                else:
                    assert np.all(row == NEG_INF)

    def test_context_without_scored_decisions_is_all_negative_infinity(self):
        grid = _grid({'S': ['a'], 'T': ['a']}, {('S', 'a'): ['f']})
        thetas = compute_log_thetas(grid, np.array([1.3]))

        assert thetas[0, 0] == pytest.approx(0.0)
        assert np.all(thetas[1] == NEG_INF)

    def test_uniform_at_zero_weights(self, toy_model):
        thetas = compute_log_thetas(toy_model.grid, np.zeros(toy_model.grid.n_features))
        assert_array_almost_equal(thetas[0], [-np.log(2), -np.log(2)])

    def test_deterministic(self, random_models):
        model = random_models[-1]
        weights = np.linspace(-1, 1, model.grid.n_features)
        assert_array_equal(compute_log_thetas(model.grid, weights),
                           compute_log_thetas(model.grid, weights))

    def test_wrong_weight_length(self, toy_model):
        with pytest.raises(ValueError):
            compute_log_thetas(toy_model.grid, np.zeros(toy_model.grid.n_features + 1))

    def test_decode(self, toy_model):
        decoded = decode_log_thetas(toy_model.grid, compute_log_thetas(toy_model.grid, np.zeros(2)))
        assert set(decoded) == {'S'}
        assert decoded['S']['a'] == pytest.approx(-np.log(2))


class TestGradient:
    """Test suite for the expected complete log-likelihood gradient."""

    def test_matches_finite_differences(self, random_models):
        rng = np.random.default_rng(11)
        for model in random_models:
            objective = MStepObjective(model.grid, model._counts)
            x = rng.normal(scale=0.5, size=model.grid.n_features)
            differences = check_gradient(objective, x, epsilon=1e-6, rng=rng)
            assert np.all(differences < 1e-4)

    def test_dense_and_sparse_counts_agree(self, random_models):
        for model in random_models:
            weights = np.linspace(-0.5, 0.5, model.grid.n_features)
            dense = MStepObjective(model.grid, model._counts, dense_threshold=0.0)
            sparse = MStepObjective(model.grid, model._counts, dense_threshold=1.1)

            dense_value, dense_grad = dense(weights)
            sparse_value, sparse_grad = sparse(weights)
            assert dense_value == pytest.approx(sparse_value)
            assert_array_almost_equal(dense_grad, sparse_grad)

    def test_toy_gradient_at_zero(self, toy_model):
        objective = toy_model.m_step_objective({'S': {'a': 3.0, 'b': 1.0}})
        value, grad = objective(np.zeros(2))

        a = toy_model.feature_index.lookup(('S', 'a'))
        b = toy_model.feature_index.lookup(('S', 'b'))
        assert value == pytest.approx(4 * np.log(2))
        # margin = e - total * theta = 3 - 2 and 1 - 2, negated
        assert grad[a] == pytest.approx(-1.0)
        assert grad[b] == pytest.approx(1.0)

    def test_unscored_decision_contributes_no_gradient(self):
        grid = _grid({'S': ['a', 'b']}, {('S', 'a'): ['f']})
        counts, totals = encode_counts(grid, {'S': {'a': 2.0}})
        _, grad = compute_gradient(grid, compute_log_thetas(grid, np.array([0.4])), counts, totals)
        assert grad[0] == pytest.approx(0.0)

    def test_encode_counts_rejects_bad_input(self, toy_model):
        with pytest.raises(ValueError):
            encode_counts(toy_model.grid, {'X': {'a': 1.0}})
        with pytest.raises(ValueError):
            encode_counts(toy_model.grid, {'S': {'zzz': 1.0}})
        with pytest.raises(ValueError):
            encode_counts(toy_model.grid, {'S': {'a': -1.0}})

    def test_contexts_without_counts(self, toy_model):
        counts, totals = encode_counts(toy_model.grid, {})
        assert counts == [None]
        value, grad = compute_gradient(toy_model.grid, compute_log_thetas(toy_model.grid, np.zeros(2)),
                                       counts, totals)
        assert value == 0.0
        assert_array_equal(grad, np.zeros(2))

    def test_encode_counts_rejects_decision_invalid_in_context(self):
        grid = _grid({'S': ['a', 'b'], 'T': ['c']}, {('S', 'a'): ['f'], ('T', 'c'): ['g']})

        with pytest.raises(ValueError, match="not valid in context"):
            encode_counts(grid, {'S': {'a': 1.0, 'c': 2.0}})


class TestCheckGradient:
    """Test suite for check_gradient."""

    def test_reports_wrong_gradient(self, caplog):
        def wrong(x):
            return float(x @ x), 3 * x

        with caplog.at_level('WARNING', logger='loglinear_grammar.core.gradient_check'):
            differences = check_gradient(wrong, np.array([1.0, -2.0]), epsilon=1e-6,
                                         to_string=lambda i: f"w{i}")

        # analytic 3x against numerical 2x
        assert_array_almost_equal(differences, [1.0, 2.0], decimal=4)
        messages = [r.getMessage() for r in caplog.records]
        assert len(messages) == 2
        assert "Gradient mismatch for w0" in messages[0]

    def test_unchecked_coordinates_are_zero(self):
        differences = check_gradient(lambda x: (float(x @ x), 3 * x), np.ones(4),
                                     rand_fraction=1e-9, rng=np.random.default_rng(0))
        assert_array_equal(differences, np.zeros(4))
