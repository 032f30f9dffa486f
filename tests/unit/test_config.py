"""
Unit tests for the configuration system.
"""

import json
import os
from unittest.mock import patch

import pytest
import yaml

from pipeforge.codegen.rules import GenerationRules
from pipeforge.compiler import InMemoryCompileStrategy, ToFileCompileStrategy
from pipeforge.utils.config import (
    TO_FILE,
    PipeforgeConfig,
    get_config,
    load_config,
    set_config,
)


class TestDefaults:
    """Test default configuration values."""

    def test_default_sections(self):
        """Test the defaults of every section."""
        config = PipeforgeConfig()
        assert config.compilation.strategy == "in_memory"
        assert config.compilation.output_dir is None
        assert config.compilation.optimize == -1
        assert config.cache.enabled is True
        assert config.logging.level == "INFO"
        assert config.debug.enabled is False
        assert not config.is_debug_enabled()
        assert config.is_cache_enabled()

    def test_to_dict(self):
        """Test the serialized form."""
        data = PipeforgeConfig().to_dict()
        assert data["version"] == "1.0"
        assert set(data) == {"version", "compilation", "cache", "logging", "debug"}
        assert data["compilation"]["strategy"] == "in_memory"


class TestLoading:
    """Test loading configuration from files."""

    def test_load_yaml(self, tmp_path):
        """Test loading a YAML file."""
        path = tmp_path / "pipeforge.yaml"
        path.write_text(yaml.safe_dump({
            "compilation": {"strategy": "to_file", "output_dir": str(tmp_path / "out")},
            "debug": {"enabled": True},
        }))

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(path))

        assert config.compilation.strategy == TO_FILE
        assert config.compilation.output_dir == str(tmp_path / "out")
        assert config.debug.enabled
        assert config.config_file == path

    def test_load_json(self, tmp_path):
        """Test loading a JSON file."""
        path = tmp_path / "pipeforge.json"
        path.write_text(json.dumps({"cache": {"enabled": False}}))

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(path))

        assert not config.is_cache_enabled()

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test that a missing file is not an error."""
        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(tmp_path / "absent.yaml"))
        assert config.compilation.strategy == "in_memory"

    def test_unknown_keys_ignored(self, tmp_path):
        """Test that unknown keys do not break loading."""
        path = tmp_path / "pipeforge.yaml"
        path.write_text(yaml.safe_dump({"compilation": {"strategy": "to_file", "unused_option": "value"}}))

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(path))
        assert config.compilation.strategy == TO_FILE
        assert not hasattr(config.compilation, "unused_option")

    def test_config_file_from_environment(self, tmp_path):
        """Test that PIPEFORGE_CONFIG names the file to load."""
        path = tmp_path / "pipeforge.yaml"
        path.write_text(yaml.safe_dump({"logging": {"level": "DEBUG"}}))

        with patch.dict(os.environ, {"PIPEFORGE_CONFIG": str(path)}, clear=True):
            config = PipeforgeConfig.from_file()
        assert config.logging.level == "DEBUG"


class TestEnvironmentOverrides:
    """Test environment variable overrides."""

    @pytest.mark.parametrize("value", ["1", "true", "YES"])
    def test_debug(self, value):
        """Test enabling debug output."""
        with patch.dict(os.environ, {"PIPEFORGE_DEBUG": value}, clear=True):
            assert PipeforgeConfig.from_file().is_debug_enabled()

    def test_disable_cache(self):
        """Test disabling the cache."""
        with patch.dict(os.environ, {"PIPEFORGE_DISABLE_CACHE": "true"}, clear=True):
            assert not PipeforgeConfig.from_file().is_cache_enabled()

    def test_strategy_and_cache_dir(self, tmp_path):
        """Test overriding the strategy and the cache directory."""
        environ = {"PIPEFORGE_COMPILE_STRATEGY": "TO_FILE", "PIPEFORGE_CACHE_DIR": str(tmp_path)}
        with patch.dict(os.environ, environ, clear=True):
            config = PipeforgeConfig.from_file()

        assert config.compilation.strategy == TO_FILE
        assert config.cache.cache_dir == str(tmp_path)

    def test_environment_wins_over_file(self, tmp_path):
        """Test that overrides are applied after the file is read."""
        path = tmp_path / "pipeforge.yaml"
        path.write_text(yaml.safe_dump({"logging": {"level": "ERROR"}}))

        with patch.dict(os.environ, {"PIPEFORGE_LOG_LEVEL": "debug"}, clear=True):
            config = load_config(str(path))
        assert config.logging.level == "DEBUG"


class TestSaving:
    """Test saving configuration."""

    @pytest.mark.parametrize("suffix", [".yaml", ".json"])
    def test_save_and_reload(self, tmp_path, suffix):
        """Test that a saved configuration loads back with the same values."""
        config = PipeforgeConfig()
        config.compilation.strategy = TO_FILE
        config.cache.cache_dir = str(tmp_path / "cache")

        path = config.save_config(str(tmp_path / f"saved{suffix}"))
        with patch.dict(os.environ, {}, clear=True):
            reloaded = load_config(str(path))

        assert reloaded.to_dict() == config.to_dict()

    def test_save_without_target(self):
        """Test that saving requires a target file."""
        with pytest.raises(ValueError):
            PipeforgeConfig().save_config()


class TestGlobalConfig:
    """Test the process-wide configuration."""

    def test_set_and_get(self):
        """Test replacing the global configuration."""
        config = PipeforgeConfig()
        set_config(config)
        assert get_config() is config

    def test_lazily_loaded(self):
        """Test that the global configuration is created on first use."""
        set_config(None)
        with patch.dict(os.environ, {}, clear=True):
            config = get_config()
        assert isinstance(config, PipeforgeConfig)
        assert get_config() is config


class TestGenerationRulesFromConfig:
    """Test that configuration selects the generation rules."""

    def test_in_memory(self):
        """Test the default compile strategy."""
        rules = GenerationRules.from_config(PipeforgeConfig())
        assert isinstance(rules.compile_strategy, InMemoryCompileStrategy)
        assert rules.debug_artifacts is None

    def test_to_file_and_debug(self, tmp_path):
        """Test the cached strategy and debug artifacts."""
        config = PipeforgeConfig()
        config.compilation.strategy = TO_FILE
        config.compilation.output_dir = str(tmp_path / "artifacts")
        config.debug.enabled = True
        config.debug.debug_dir = str(tmp_path / "debug")

        rules = GenerationRules.from_config(config)
        assert isinstance(rules.compile_strategy, ToFileCompileStrategy)
        assert rules.compile_strategy.output_dir == tmp_path / "artifacts"
        assert rules.debug_artifacts.debug_dir == tmp_path / "debug"
