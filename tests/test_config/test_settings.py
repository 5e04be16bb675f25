"""Tests for configuration settings functionality."""

import logging
import tempfile
from pathlib import Path

import pytest

from loglinear_grammar.config import settings as settings_module
from loglinear_grammar.config.settings import Settings, configure_logging, get_config, set_config
from loglinear_grammar.core import LBFGSMinimizer


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    monkeypatch.setattr(settings_module, '_GLOBAL_CONFIG', None)


class TestSettingsDataclass:
    """Test suite for the Settings dataclass."""

    def test_default_initialization(self):
        settings = Settings()

        assert settings.max_em_iterations == 50
        assert settings.max_m_step_iterations == 90
        assert settings.lbfgs_memory == 5
        assert settings.dense_fill_ratio == 0.25
        assert settings.n_workers == 1
        assert settings.random_seed is None

    @pytest.mark.parametrize("kwargs", [
        {'max_em_iterations': -1},
        {'max_m_step_iterations': 0},
        {'lbfgs_memory': 0},
        {'dense_fill_ratio': 0.0},
        {'dense_fill_ratio': 1.5},
        {'n_workers': 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            Settings(**kwargs)

    def test_soft_issues_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            Settings(max_m_step_iterations=2)
        assert "very low" in caplog.text

    def test_from_preset(self):
        fast = Settings.from_preset('fast')
        assert fast.max_em_iterations == 5
        assert fast.max_m_step_iterations == 20

        with pytest.raises(ValueError):
            Settings.from_preset('nonexistent')

    def test_update_returns_new_instance(self):
        settings = Settings()
        updated = settings.update(n_workers=4)

        assert updated.n_workers == 4
        assert settings.n_workers == 1
        with pytest.raises(ValueError):
            settings.update(n_workers=0)

    def test_make_optimizer(self):
        optimizer = Settings(max_m_step_iterations=30, lbfgs_memory=7, m_step_tolerance=1e-3).make_optimizer()

        assert isinstance(optimizer, LBFGSMinimizer)
        assert optimizer.max_iterations == 30
        assert optimizer.memory == 7
        assert optimizer.tolerance == 1e-3


class TestTomlRoundTrip:
    """Test suite for TOML loading and saving."""

    def test_save_and_load(self):
        settings = Settings(max_em_iterations=12, lbfgs_memory=8, random_seed=3, verbose=True)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'settings.toml'
            settings.to_toml(path)
            assert Settings.from_toml(path) == settings

    def test_seed_omitted_when_unset(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'settings.toml'
            Settings().to_toml(path)
            assert 'random_seed' not in path.read_text()
            assert Settings.from_toml(path).random_seed is None

    def test_flat_layout(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'flat.toml'
            path.write_text('max_em_iterations = 7\n\n[processing]\nn_workers = 2\n')
            loaded = Settings.from_toml(path)

        assert loaded.max_em_iterations == 7
        assert loaded.n_workers == 2

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            Settings.from_toml('does_not_exist.toml')

    def test_unknown_key(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'bad.toml'
            path.write_text('[em]\nalphabet_size = 3\n')
            with pytest.raises(TypeError):
                Settings.from_toml(path)


class TestGlobalConfig:
    """Test suite for get_config / set_config."""

    def test_preset_fallback(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Path, 'home', lambda: tmp_path)
        config = get_config(preset='fast')

        assert config.max_em_iterations == 5
        assert get_config() is config

    def test_explicit_path_and_reload(self, tmp_path):
        path = tmp_path / 'custom.toml'
        Settings(max_em_iterations=9).to_toml(path)

        assert get_config(config_path=path).max_em_iterations == 9
        assert get_config(config_path=path, preset='fast').max_em_iterations == 9

    def test_set_config_seeds(self):
        from loglinear_grammar.config.random_state import get_global_seed

        set_config(Settings(random_seed=77))
        assert get_config().random_seed == 77
        assert get_global_seed() == 77


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_configure_logging_writes_file(tmp_path, root_logger):
    log_file = tmp_path / 'run.log'
    configure_logging(verbose=True, log_file=log_file)
    logging.getLogger('loglinear_grammar.test').debug("hello from the test")
    for handler in root_logger.handlers:
        handler.flush()
    assert "hello from the test" in log_file.read_text()


@pytest.mark.parametrize("verbose, level", [(True, logging.DEBUG), (False, logging.INFO)])
def test_configure_logging_uses_configured_verbosity(root_logger, verbose, level):
    set_config(Settings(verbose=verbose))
    configure_logging()

    console = [h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)
               and not isinstance(h, logging.FileHandler)]
    assert [h.level for h in console] == [level]
