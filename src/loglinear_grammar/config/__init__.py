"""Configuration management for loglinear-grammar.

Provides global configuration, logging setup and random seed management for
reproducible training runs.
"""

from .settings import get_config, set_config, configure_logging, Settings
from .random_state import set_global_seed, get_global_seed, make_rng
from .defaults import DEFAULT_CONFIG, FAST_CONFIG, THOROUGH_CONFIG, TRAINING_CONFIGS, DefaultConfig

__all__ = [
    'get_config',
    'set_config',
    'configure_logging',
    'set_global_seed',
    'get_global_seed',
    'make_rng',
    'Settings',
    'DEFAULT_CONFIG',
    'FAST_CONFIG',
    'THOROUGH_CONFIG',
    'TRAINING_CONFIGS',
    'DefaultConfig'
]
