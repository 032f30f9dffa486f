"""
pipeforge: code-generated operation pipelines

Instead of interpreting a generic middleware chain on every call,
pipeforge synthesizes one Python class per operation type, specialised to
exactly the middleware that applies to it, compiles the generated source
and caches the compiled code on disk across process restarts.

Usage:
    from pipeforge import PipelineOptions, PipelineExecutorBuilder

    options = PipelineOptions()
    options.add_operation(AddNumbers, AddNumbersHandler)
    executor = PipelineExecutorBuilder(options, services).build()
    result = executor.run(AddNumbers(40, 2))
"""

__version__ = "0.1.0"
__author__ = "pipeforge developers"

# Public API exports
from .utils.config import PipeforgeConfig, get_config, set_config, load_config
from .utils.exceptions import (
    PipeforgeError,
    ConfigurationError,
    CompilationError,
)
from .codegen import GeneratedMethod, GeneratedModule, GeneratedType, GenerationRules
from .pipeline import (
    CodeGennedExecutor,
    MiddlewareBuilder,
    MiddlewareStage,
    OkResult,
    OperationContext,
    OperationResult,
    PipelineExecutorBuilder,
    PipelineOptions,
    ServiceProvider,
    ValidationError,
    ValidationFailedOperationResult,
    UnhandledExceptionOperationResult,
)

__all__ = [
    "PipeforgeConfig",
    "get_config",
    "set_config",
    "load_config",
    "PipeforgeError",
    "ConfigurationError",
    "CompilationError",
    "GeneratedMethod",
    "GeneratedModule",
    "GeneratedType",
    "GenerationRules",
    "CodeGennedExecutor",
    "MiddlewareBuilder",
    "MiddlewareStage",
    "OkResult",
    "OperationContext",
    "OperationResult",
    "PipelineExecutorBuilder",
    "PipelineOptions",
    "ServiceProvider",
    "ValidationError",
    "ValidationFailedOperationResult",
    "UnhandledExceptionOperationResult",
]
