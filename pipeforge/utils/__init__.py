"""
Utils package for pipeforge.

This module provides logging, the exception hierarchy, configuration,
naming helpers and debug artifact management.
"""

from .exceptions import (
    PipeforgeError,
    ConfigurationError,
    DuplicateFrameError,
    DuplicateTypeError,
    NoHandlerFoundError,
    MultipleHandlersFoundError,
    UnresolvableVariableError,
    DependencyCycleError,
    CompilationError,
    Diagnostic,
)

from .config import (
    PipeforgeConfig,
    CompilationConfig,
    CacheConfig,
    LoggingConfig,
    DebugConfig,
    get_config,
    set_config,
    load_config,
)

from .logging import setup_logging, get_logger, PipeforgeLogger
from .naming import (
    camel_to_snake_case,
    sanitize_identifier,
    generate_unique_name,
    default_variable_name,
    pipeline_type_name,
)
from .debug_artifacts import DebugArtifactManager
