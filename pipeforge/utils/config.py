"""
Configuration System for pipeforge.

This module provides a single configuration object covering compilation,
caching, logging and debug output. Values are read from a YAML or JSON
file and may be overridden through environment variables.
"""

import json
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = ("1", "true", "yes")

IN_MEMORY = "in_memory"
TO_FILE = "to_file"


@dataclass
class CompilationConfig:
    """Compilation configuration."""

    strategy: str = IN_MEMORY
    output_dir: Optional[str] = None
    module_name: str = "pipeforge_generated"
    optimize: int = -1


@dataclass
class CacheConfig:
    """Cache configuration."""

    enabled: bool = True
    cache_dir: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    enable_file_logging: bool = False
    log_file: str = "pipeforge.log"


@dataclass
class DebugConfig:
    """Debug output configuration."""

    enabled: bool = False
    debug_dir: Optional[str] = None
    trace_synthesis: bool = True
    trace_compilation: bool = True


@dataclass
class PipeforgeConfig:
    """
    Unified configuration for pipeforge.

    Sections are plain dataclasses so they can be constructed directly in
    code and tests, or loaded from disk with :meth:`from_file`.
    """

    compilation: CompilationConfig = field(default_factory=CompilationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)
    config_file: Optional[Path] = None

    @classmethod
    def from_file(cls, config_file: Optional[str] = None) -> "PipeforgeConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            config_file: Path to configuration file. If None, ``PIPEFORGE_CONFIG``
                is consulted; without either only defaults and environment
                overrides apply.

        Returns:
            Populated configuration
        """
        path = config_file or os.getenv("PIPEFORGE_CONFIG")
        data = _load_config_data(Path(path)) if path else {}

        config = cls(
            compilation=_section(CompilationConfig, data.get("compilation")),
            cache=_section(CacheConfig, data.get("cache")),
            logging=_section(LoggingConfig, data.get("logging")),
            debug=_section(DebugConfig, data.get("debug")),
            config_file=Path(path) if path else None,
        )
        config.apply_environment()
        return config

    def apply_environment(self) -> None:
        """Apply environment variable overrides in place."""
        if os.getenv("PIPEFORGE_DEBUG", "").lower() in _TRUE_VALUES:
            self.debug.enabled = True

        if os.getenv("PIPEFORGE_DISABLE_CACHE", "").lower() in _TRUE_VALUES:
            self.cache.enabled = False

        strategy = os.getenv("PIPEFORGE_COMPILE_STRATEGY")
        if strategy:
            self.compilation.strategy = strategy.lower()

        cache_dir = os.getenv("PIPEFORGE_CACHE_DIR")
        if cache_dir:
            self.cache.cache_dir = cache_dir

        level = os.getenv("PIPEFORGE_LOG_LEVEL")
        if level:
            self.logging.level = level.upper()

    def is_debug_enabled(self) -> bool:
        """Check if debug mode is enabled."""
        return self.debug.enabled

    def is_cache_enabled(self) -> bool:
        """Check if caching is enabled."""
        return self.cache.enabled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": "1.0",
            "compilation": asdict(self.compilation),
            "cache": asdict(self.cache),
            "logging": asdict(self.logging),
            "debug": asdict(self.debug),
        }

    def save_config(self, config_file: Optional[str] = None) -> Path:
        """
        Save current configuration to file.

        The format follows the file extension: ``.yaml``/``.yml`` is written
        with PyYAML, anything else as JSON.
        """
        target = Path(config_file) if config_file else self.config_file
        if target is None:
            raise ValueError("No configuration file given to save to")

        with open(target, "w") as f:
            if target.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {target}")
        return target


def _load_config_data(config_file: Path) -> Dict[str, Any]:
    """Load raw configuration data from file (JSON or YAML)."""
    if not config_file.exists():
        logger.warning(f"Configuration file {config_file} not found, using defaults")
        return {}

    with open(config_file, "r") as f:
        if config_file.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    logger.info(f"Loaded configuration from {config_file}")
    return data or {}


def _section(section_type, values: Optional[Dict[str, Any]]):
    values = values or {}
    known = {k: v for k, v in values.items() if k in section_type.__dataclass_fields__}
    unknown = sorted(set(values) - set(known))
    if unknown:
        logger.warning(f"Ignoring unknown {section_type.__name__} keys: {', '.join(unknown)}")
    return section_type(**known)


# Global configuration instance
_global_config: Optional[PipeforgeConfig] = None


def get_config() -> PipeforgeConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = PipeforgeConfig.from_file()
    return _global_config


def set_config(config: Optional[PipeforgeConfig]) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def load_config(config_file: str) -> PipeforgeConfig:
    """Load configuration from a specific file."""
    return PipeforgeConfig.from_file(config_file)
