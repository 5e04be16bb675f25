"""Main configuration settings with TOML loading support."""

import logging
import sys
import tomllib
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional, Union

import tomli_w

from .defaults import TRAINING_CONFIGS, DefaultConfig, validate_config

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Main configuration settings for log-linear grammar training.

    Can be loaded from TOML files for user customization while providing
    sensible defaults for different training scenarios.
    """

    # EM parameters
    max_em_iterations: int = 50
    em_tolerance: float = 1e-5

    # M-step optimizer parameters
    max_m_step_iterations: int = 90
    lbfgs_memory: int = 5
    m_step_tolerance: float = 1e-6

    # Indexing parameters
    dense_fill_ratio: float = 0.25

    # Processing parameters
    n_workers: int = 1
    use_processes: bool = False

    # Reproducibility
    random_seed: Optional[int] = None

    verbose: bool = False

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.max_em_iterations < 0:
            raise ValueError(f"max_em_iterations must be non-negative, got {self.max_em_iterations}")
        if self.max_m_step_iterations < 1:
            raise ValueError(f"max_m_step_iterations must be positive, got {self.max_m_step_iterations}")
        if self.lbfgs_memory < 1:
            raise ValueError(f"lbfgs_memory must be positive, got {self.lbfgs_memory}")
        if not 0.0 < self.dense_fill_ratio <= 1.0:
            raise ValueError(f"dense_fill_ratio must be in (0, 1], got {self.dense_fill_ratio}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be positive, got {self.n_workers}")

        temp_config = DefaultConfig(
            max_em_iterations=self.max_em_iterations,
            em_tolerance=self.em_tolerance,
            max_m_step_iterations=self.max_m_step_iterations,
            lbfgs_memory=self.lbfgs_memory,
            m_step_tolerance=self.m_step_tolerance,
            dense_fill_ratio=self.dense_fill_ratio,
            n_workers=self.n_workers,
            use_processes=self.use_processes
        )
        for warning in validate_config(temp_config):
            logger.warning("Configuration warning: %s", warning)

    @classmethod
    def from_preset(cls, preset: str) -> 'Settings':
        """Create settings from a preset configuration.

        Parameters
        ----------
        preset : str
            Preset name ('default', 'fast', 'thorough')

        Returns
        -------
        Settings
            Settings object with preset values
        """
        if preset not in TRAINING_CONFIGS:
            raise ValueError(f"Unknown preset '{preset}'. Available: {list(TRAINING_CONFIGS.keys())}")

        return cls(**asdict(TRAINING_CONFIGS[preset]))

    @classmethod
    def from_toml(cls, toml_path: Union[str, Path]) -> 'Settings':
        """Load settings from TOML file.

        Both a sectioned layout (``[em]``, ``[optimizer]``, ``[indexing]``,
        ``[processing]``, ``[advanced]``) and a flat layout are accepted.

        Raises
        ------
        FileNotFoundError
            If TOML file doesn't exist
        """
        toml_path = Path(toml_path)
        if not toml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {toml_path}")

        with open(toml_path, 'rb') as f:
            config_data = tomllib.load(f)

        settings_data = {}
        for section in ('em', 'optimizer', 'indexing', 'processing', 'advanced'):
            if section in config_data:
                settings_data.update(config_data[section])

        for key, value in config_data.items():
            if not isinstance(value, dict):
                settings_data[key] = value

        return cls(**settings_data)

    def to_toml(self, toml_path: Union[str, Path]) -> None:
        """Save settings to TOML file in the sectioned layout."""
        config_data = {
            'em': {
                'max_em_iterations': self.max_em_iterations,
                'em_tolerance': self.em_tolerance
            },
            'optimizer': {
                'max_m_step_iterations': self.max_m_step_iterations,
                'lbfgs_memory': self.lbfgs_memory,
                'm_step_tolerance': self.m_step_tolerance
            },
            'indexing': {
                'dense_fill_ratio': self.dense_fill_ratio
            },
            'processing': {
                'n_workers': self.n_workers,
                'use_processes': self.use_processes
            },
            'advanced': {
                'verbose': self.verbose
            }
        }
        # TOML has no null
        if self.random_seed is not None:
            config_data['advanced']['random_seed'] = self.random_seed

        toml_path = Path(toml_path)
        with open(toml_path, 'wb') as f:
            tomli_w.dump(config_data, f)

    def update(self, **kwargs) -> 'Settings':
        """Create new Settings with updated values."""
        current_dict = asdict(self)
        current_dict.update(kwargs)
        return Settings(**current_dict)

    def make_optimizer(self):
        """L-BFGS minimizer configured from these settings."""
        from ..core.optimizer import LBFGSMinimizer
        return LBFGSMinimizer(max_iterations=self.max_m_step_iterations,
                              memory=self.lbfgs_memory,
                              tolerance=self.m_step_tolerance)


CONFIG_FILE_NAME = 'loglinear_grammar.toml'

# Global configuration instance
_GLOBAL_CONFIG: Optional[Settings] = None


def default_config_paths() -> List[Path]:
    """Locations searched for a settings file, in priority order."""
    return [
        Path(CONFIG_FILE_NAME),
        Path.home() / f'.{CONFIG_FILE_NAME}',
        Path.cwd() / 'config' / CONFIG_FILE_NAME
    ]


def _load_first_config(paths: List[Path]) -> Optional[Settings]:
    for path in paths:
        if not path.exists():
            continue
        try:
            return Settings.from_toml(path)
        except (tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.warning("Could not load config from %s: %s", path, e)
    return None


def _activate(settings: Settings) -> Settings:
    global _GLOBAL_CONFIG
    _GLOBAL_CONFIG = settings
    if settings.random_seed is not None:
        from .random_state import set_global_seed
        set_global_seed(settings.random_seed)
    return settings


def get_config(config_path: Optional[Union[str, Path]] = None,
               preset: Optional[str] = None,
               reload: bool = False) -> Settings:
    """Get global configuration settings.

    Resolution order: ``config_path``, then the first readable file among
    ``default_config_paths()``, then ``preset`` (default ``'default'``). A
    ``random_seed`` in the resolved settings seeds the global generators.

    Parameters
    ----------
    config_path : Optional[Union[str, Path]]
        Path to a TOML settings file
    preset : Optional[str]
        Preset used when no file is found ('default', 'fast', 'thorough')
    reload : bool
        Resolve again even if a configuration is already active

    Returns
    -------
    Settings
        Active configuration
    """
    if _GLOBAL_CONFIG is not None and not reload:
        return _GLOBAL_CONFIG

    if config_path is not None:
        return _activate(Settings.from_toml(config_path))

    settings = _load_first_config(default_config_paths())
    if settings is None:
        settings = Settings.from_preset(preset or 'default')
    return _activate(settings)


def set_config(settings: Settings) -> None:
    """Replace the active configuration, seeding from it if it has a seed."""
    _activate(settings)


def configure_logging(verbose: Optional[bool] = None, log_file: Optional[Path] = None) -> None:
    """Configure the root logger to log to stdout and optionally a file.

    Args:
        verbose: If ``True`` set console log level to ``DEBUG`` else ``INFO``.
            Defaults to ``verbose`` of the active configuration.
        log_file: Optional path to a log file, always written at ``DEBUG``.
    """
    if verbose is None:
        verbose = get_config().verbose

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    logging.debug("Logging initialised. Log file: %s", log_file)
