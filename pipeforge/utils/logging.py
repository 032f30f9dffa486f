"""
Logging configuration and utilities.

This module provides centralized logging configuration for the
pipeforge package with appropriate formatting and levels.
"""

import logging
import os
from typing import Optional


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the pipeforge package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
    """
    # Determine log level
    if level is None:
        level = os.environ.get("PIPEFORGE_LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)

    # Configure root logger for pipeforge
    logger = logging.getLogger("pipeforge")
    logger.setLevel(log_level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == "pipeforge" or name.startswith("pipeforge."):
        return logging.getLogger(name)
    return logging.getLogger(f"pipeforge.{name}")


class PipeforgeLogger:
    """
    Component-level logging for synthesis and compilation.

    This class provides specialized logging methods for the different
    stages a pipeline goes through before it can be executed.
    """

    def __init__(self, name: str):
        """
        Initialize logger for specific component.

        Args:
            name: Component name for logging context
        """
        self.logger = get_logger(name)

    def log_synthesis(self, type_name: str, method_name: str, frame_count: int, async_mode: str) -> None:
        """
        Log the outcome of arranging the frames of a single method.

        Args:
            type_name: Name of the generated type owning the method
            method_name: Name of the generated method
            frame_count: Number of frames that were registered during discovery
            async_mode: Deduced asynchronous shape of the method
        """
        self.logger.debug(
            f"Arranged {type_name}.{method_name}: {frame_count} frames, async mode {async_mode}"
        )

    def log_compilation_start(self, unit_name: str, content_hash: str, source_count: int) -> None:
        """
        Log beginning of compilation process.

        Args:
            unit_name: Name of the unit being compiled
            content_hash: Hash of the concatenated source texts
            source_count: Number of source texts in the unit
        """
        self.logger.info(
            f"Compiling unit '{unit_name}' ({source_count} sources). Hash of compilation is {content_hash[:12]}..."
        )

    def log_cache_hit(self, unit_name: str, content_hash: str) -> None:
        """
        Log cache hit for compiled artifacts.

        Args:
            unit_name: Unit that was found in cache
            content_hash: Hash stored in the manifest
        """
        self.logger.info(
            f"NOT compiling '{unit_name}' as previous compilation exists. Hash of compilation is {content_hash[:12]}..."
        )

    def log_cache_miss(self, unit_name: str, reason: str) -> None:
        """
        Log cache miss requiring new compilation.

        Args:
            unit_name: Unit that was not found in cache
            reason: Why the cached artifact could not be used
        """
        self.logger.debug(f"Cache miss for unit '{unit_name}': {reason}")


# Initialize logging on module import
setup_logging()
