"""
Middleware composition layer for pipeforge.

Operations are registered with handlers and middleware contributors;
:class:`PipelineExecutorBuilder` synthesizes and compiles one pipeline
class per operation and returns a :class:`CodeGennedExecutor` that runs
them.
"""

from .results import (
    OperationResult,
    OkResult,
    ValidationFailedOperationResult,
    UnhandledExceptionOperationResult,
)
from .validation import ValidationError
from .services import Lifetime, ServiceProvider, ServiceNotRegisteredError
from .descriptor import DataModel, OperationDescriptor
from .context import OperationContext
from .frames import (
    ConcreteOperationCastFrame,
    GetInstanceFrame,
    OperationResultCastFrame,
    LogFrame,
    LogExceptionFrame,
    ErrorHandlerFrame,
)
from .middleware import MiddlewareBuilder, MiddlewareStage, PipelineBuilder
from .builder_context import MiddlewareBuilderContext
from .handlers import (
    HandlerRegistry,
    OperationExecutorBuilder,
    HandlerExecutorBuilder,
    InlineExecutorBuilder,
)
from .builtin import (
    OperationExecutorMiddlewareBuilder,
    ReturnFrameMiddlewareBuilder,
    ValidationMiddlewareBuilder,
    LoggingMiddlewareBuilder,
)
from .variable_sources import OperationContextVariableSource, ContainerVariableSource
from .executor import OperationExecutorPipeline, CodeGennedExecutor
from .options import PipelineOptions
from .executor_builder import PipelineExecutorBuilder
