"""Default configuration parameters for different training scenarios."""

from dataclasses import dataclass
from typing import List


@dataclass
class DefaultConfig:
    """Base configuration structure for EM training and corpus projection."""

    # EM parameters
    max_em_iterations: int
    em_tolerance: float

    # M-step optimizer parameters
    max_m_step_iterations: int
    lbfgs_memory: int
    m_step_tolerance: float

    # Indexing parameters
    dense_fill_ratio: float

    # Processing parameters
    n_workers: int
    use_processes: bool


# 90 L-BFGS iterations with 5 stored corrections per M-step
DEFAULT_CONFIG = DefaultConfig(
    max_em_iterations=50,
    em_tolerance=1e-5,
    max_m_step_iterations=90,
    lbfgs_memory=5,
    m_step_tolerance=1e-6,
    dense_fill_ratio=0.25,
    n_workers=1,
    use_processes=False
)

# Quick runs for debugging and tests
FAST_CONFIG = DefaultConfig(
    max_em_iterations=5,
    em_tolerance=1e-3,
    max_m_step_iterations=20,
    lbfgs_memory=5,
    m_step_tolerance=1e-4,
    dense_fill_ratio=0.25,
    n_workers=1,
    use_processes=False
)

# Large grammars on multi-core machines
THOROUGH_CONFIG = DefaultConfig(
    max_em_iterations=200,
    em_tolerance=1e-7,
    max_m_step_iterations=300,
    lbfgs_memory=10,
    m_step_tolerance=1e-8,
    dense_fill_ratio=0.25,
    n_workers=8,
    use_processes=True
)

TRAINING_CONFIGS = {
    "default": DEFAULT_CONFIG,
    "fast": FAST_CONFIG,
    "thorough": THOROUGH_CONFIG
}

# Optimizer guidelines
MAX_RECOMMENDED_LBFGS_MEMORY = 50
MIN_M_STEP_ITERATIONS_WARNING = 5


def validate_config(config: DefaultConfig) -> List[str]:
    """Validate configuration parameters and return list of warnings."""
    warnings = []

    if config.max_m_step_iterations < MIN_M_STEP_ITERATIONS_WARNING:
        warnings.append(f"M-step iteration cap {config.max_m_step_iterations} is very low; "
                        f"weights may barely move between EM iterations")

    if config.lbfgs_memory > MAX_RECOMMENDED_LBFGS_MEMORY:
        warnings.append(f"L-BFGS memory {config.lbfgs_memory} is unusually large")

    if config.em_tolerance <= 0:
        warnings.append("EM tolerance is not positive; EM will only stop at the iteration cap")

    if config.use_processes and config.n_workers <= 1:
        warnings.append("use_processes has no effect with a single worker")

    return warnings
