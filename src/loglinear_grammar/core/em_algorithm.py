"""EM training of featurized log-linear (context, decision) distributions.

Each iteration asks the model for expected counts under the current thetas
(E-step) and then refits the feature weights by maximizing the expected
complete log-likelihood with L-BFGS (M-step). The driver is a lazy generator;
the caller decides when to stop.
"""

import functools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (Callable, Dict, Generic, Hashable, Iterable, Iterator, List, Mapping,
                    Optional, Sequence, Tuple, TypeVar)

import numpy as np

from ..config.random_state import make_rng
from .directory import DEFAULT_DENSE_THRESHOLD
from .feature_grid import FeatureGrid
from .gradient import ExpectedCounts, MStepObjective, compute_gradient, encode_counts
from .optimizer import LBFGSMinimizer, Minimizer
from .thetas import compute_log_thetas, decode_log_thetas

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=Hashable)
D = TypeVar("D", bound=Hashable)
F = TypeVar("F", bound=Hashable)

LogThetas = Dict[Hashable, Dict[Hashable, float]]


@dataclass(frozen=True, eq=False)
class State:
    """One EM snapshot.

    Attributes
    ----------
    weights : np.ndarray, shape (n_features,)
        Feature weights after the M-step
    marginal_likelihood : float
        Incomplete-data log-likelihood reported by the E-step that produced
        these weights
    """
    weights: np.ndarray
    marginal_likelihood: float
    model: 'FeaturizedEM' = field(repr=False, compare=False)

    @functools.cached_property
    def encoded_log_thetas(self) -> np.ndarray:
        return compute_log_thetas(self.model.grid, self.weights)

    @functools.cached_property
    def log_thetas(self) -> LogThetas:
        """``{context: {decision: log_prob}}`` for these weights."""
        return decode_log_thetas(self.model.grid, self.encoded_log_thetas)

    def decoded_weights(self) -> Dict[Hashable, float]:
        return self.model.decode_weights(self.weights)


def weight_change_norm(previous: State, current: State) -> float:
    """L2 norm of the weight change normalized by the number of features."""
    if current.weights.size == 0:
        return 0.0
    return float(np.linalg.norm(previous.weights - current.weights, 2) / current.weights.size)


class FeaturizedEM(ABC, Generic[C, D, F]):
    """EM over a log-linear distribution p(d | c) ∝ exp(Σ_f w_f).

    Subclasses describe the model through five hooks: the contexts, the
    decisions valid in each context, the features of a (decision, context)
    pair, initial feature weights, and the expected counts of the data under
    given log-thetas.

    Parameters
    ----------
    dense_threshold : float, default=0.25
        Fill ratio above which expected counts are stored densely
    """

    def __init__(self, dense_threshold: float = DEFAULT_DENSE_THRESHOLD):
        self.dense_threshold = dense_threshold
        self.grid = FeatureGrid.build(self.all_contexts(),
                                      self.decisions_for_context,
                                      self.features)
        self.init_weights = self.initial_weights()
        logger.info("Indexed %d contexts, %d decisions, %d features",
                    self.grid.n_contexts, self.grid.n_decisions, self.grid.n_features)

    # Model hooks

    @abstractmethod
    def all_contexts(self) -> Iterable[C]:
        """All contexts, in a stable order."""

    @abstractmethod
    def decisions_for_context(self, context: C) -> Iterable[D]:
        """Decisions available in ``context``."""

    @abstractmethod
    def features(self, decision: D, context: C) -> Sequence[F]:
        """Features active on ``(decision, context)``."""

    def initial_feature_weight(self, feature: F) -> float:
        return 0.0

    @abstractmethod
    def expected_counts(self, log_thetas: LogThetas) -> Tuple[float, ExpectedCounts]:
        """Marginal log-likelihood and expected counts under ``log_thetas``."""

    # Indexing

    @property
    def context_index(self):
        return self.grid.context_index

    @property
    def decision_index(self):
        return self.grid.decision_index

    @property
    def feature_index(self):
        return self.grid.feature_index

    def initial_weights(self, randomize: bool = False,
                        rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Weights from ``initial_feature_weight``, optionally jittered by U(-1, 1) noise."""
        weights = np.array([self.initial_feature_weight(f) for f in self.grid.feature_index], dtype=float)
        if randomize:
            if rng is None:
                rng = make_rng(stream="initial_weights")
            weights += rng.uniform(-1.0, 1.0, size=weights.shape)
        return weights

    def encode_weights(self, weights: Mapping[F, float]) -> np.ndarray:
        """Dense weight vector from ``{feature: weight}``; unknown features are ignored."""
        encoded = np.zeros(self.grid.n_features)
        for feature, value in weights.items():
            f_id = self.grid.feature_index.lookup(feature)
            if f_id >= 0:
                encoded[f_id] = value
        return encoded

    def decode_weights(self, weights: np.ndarray) -> Dict[F, float]:
        return {f: float(weights[i]) for f, i in self.grid.feature_index.pairs()}

    def compute_log_thetas(self, weights: np.ndarray) -> LogThetas:
        return decode_log_thetas(self.grid, compute_log_thetas(self.grid, weights))

    # Objectives

    def m_step_objective(self, expected_counts: ExpectedCounts,
                         dense_threshold: Optional[float] = None) -> MStepObjective:
        if dense_threshold is None:
            dense_threshold = self.dense_threshold
        return MStepObjective(self.grid, expected_counts, dense_threshold)

    def calculate(self, weights: np.ndarray) -> Tuple[float, np.ndarray]:
        """Negated marginal log-likelihood paired with the expected complete gradient.

        Runs one E-step at ``weights``. The gradient is that of the expected
        complete log-likelihood at the same point, which coincides with the
        marginal gradient there.
        """
        encoded_thetas = compute_log_thetas(self.grid, weights)
        marginal_log_prob, counts = self.expected_counts(decode_log_thetas(self.grid, encoded_thetas))
        encoded_counts, totals = encode_counts(self.grid, counts, self.dense_threshold)
        _, grad = compute_gradient(self.grid, encoded_thetas, encoded_counts, totals)
        return -marginal_log_prob, grad

    # EM

    def em_iterations(self,
                      initial_weights: Optional[np.ndarray] = None,
                      max_m_step_iterations: int = 90,
                      optimizer: Optional[Minimizer] = None,
                      dense_threshold: Optional[float] = None) -> Iterator[State]:
        """Lazily run EM, yielding one ``State`` per completed E/M cycle.

        Parameters
        ----------
        initial_weights : Optional[np.ndarray]
            Starting weights. Defaults to ``initial_feature_weight`` per feature.
        max_m_step_iterations : int, default=90
            Iteration cap of the default L-BFGS optimizer
        optimizer : Optional[Minimizer]
            Replaces the default ``LBFGSMinimizer(max_m_step_iterations, memory=5)``
        dense_threshold : Optional[float]
            Fill ratio for the M-step count directories; defaults to the
            model's ``dense_threshold``

        Yields
        ------
        State
            New weights with the marginal log-likelihood of the E-step that
            produced them. The sequence is unbounded.
        """
        if optimizer is None:
            optimizer = LBFGSMinimizer(max_iterations=max_m_step_iterations, memory=5)

        weights = self.init_weights if initial_weights is None else np.asarray(initial_weights, dtype=float)
        if weights.shape[0] != self.grid.n_features:
            raise ValueError(f"initial_weights must have length {self.grid.n_features}, got {weights.shape[0]}")
        state = State(weights.copy(), float("-inf"), self)

        iteration = 0
        while True:
            logger.info("E step (iteration %d)", iteration)
            marginal_log_prob, counts = self.expected_counts(state.log_thetas)

            logger.info("M step (iteration %d)", iteration)
            objective = self.m_step_objective(counts, dense_threshold)
            new_weights = optimizer.minimize(objective, state.weights)

            new_state = State(new_weights, float(marginal_log_prob), self)
            logger.info("M step finished: marginal log-likelihood=%.6f, weight change=%.3e",
                        marginal_log_prob, weight_change_norm(state, new_state))
            yield new_state

            state = new_state
            iteration += 1

    def run(self,
            stop: Optional[Callable[[State, State], bool]] = None,
            max_iterations: int = 50,
            initial_weights: Optional[np.ndarray] = None,
            max_m_step_iterations: int = 90,
            optimizer: Optional[Minimizer] = None,
            dense_threshold: Optional[float] = None) -> List[State]:
        """Consume ``em_iterations`` until ``stop(previous, current)`` or the cap.

        Returns
        -------
        List[State]
            Every state produced, oldest first
        """
        history: List[State] = []
        if max_iterations <= 0:
            return history

        for state in self.em_iterations(initial_weights, max_m_step_iterations, optimizer, dense_threshold):
            history.append(state)
            if stop is not None and len(history) > 1 and stop(history[-2], state):
                logger.info("Stopping after %d EM iterations", len(history))
                break
            if len(history) >= max_iterations:
                logger.info("Reached maximum EM iterations (%d)", max_iterations)
                break
        return history

    def train(self, settings=None, initial_weights: Optional[np.ndarray] = None) -> List[State]:
        """Run EM with the M-step optimizer and stopping rule of ``settings``.

        Stops once ``weight_change_norm`` between consecutive states drops
        below ``settings.em_tolerance``; M-step counts use
        ``settings.dense_fill_ratio``. Uses the global configuration when
        ``settings`` is None.
        """
        if settings is None:
            from ..config.settings import get_config
            settings = get_config()

        tolerance = settings.em_tolerance
        return self.run(stop=lambda prev, cur: weight_change_norm(prev, cur) < tolerance,
                        max_iterations=settings.max_em_iterations,
                        initial_weights=initial_weights,
                        optimizer=settings.make_optimizer(),
                        dense_threshold=settings.dense_fill_ratio)
