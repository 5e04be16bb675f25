"""Core numerical components for log-linear grammar training.

This module contains the fundamental components:
- Log-space arithmetic and index registries
- Dense/sparse small-int-keyed directories and triangular span addressing
- Feature grid, theta computation and the M-step gradient
- The featurized EM driver and its L-BFGS optimizer
"""

from .numerics import NEG_INF, log_sum, log_sum_pair, log_normalize
from .index import Index
from .directory import IntDirectory, DenseDirectory, SparseDirectory, make_directory
from .triangular import TriangularArray
from .feature_grid import FeatureGrid
from .thetas import compute_log_thetas, decode_log_thetas, sum_weights
from .gradient import MStepObjective, compute_gradient, encode_counts
from .optimizer import LBFGSMinimizer, Minimizer
from .em_algorithm import FeaturizedEM, State, weight_change_norm
from .gradient_check import check_gradient

__all__ = [
    # Numerics
    'NEG_INF',
    'log_sum',
    'log_sum_pair',
    'log_normalize',

    # Indexing
    'Index',
    'IntDirectory',
    'DenseDirectory',
    'SparseDirectory',
    'make_directory',
    'TriangularArray',

    # Log-linear model
    'FeatureGrid',
    'compute_log_thetas',
    'decode_log_thetas',
    'sum_weights',
    'MStepObjective',
    'compute_gradient',
    'encode_counts',

    # EM
    'LBFGSMinimizer',
    'Minimizer',
    'FeaturizedEM',
    'State',
    'weight_change_norm',
    'check_gradient'
]
