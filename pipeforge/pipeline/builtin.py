"""
Middleware contributors shipped with pipeforge.
"""

from ..codegen.frames import CodeFrame, MethodCall, ReturnFrame
from .builder_context import MiddlewareBuilderContext
from .context import OperationContext
from .frames import LogFrame, OperationResultCastFrame
from .handlers import select_executor_builder
from .middleware import MiddlewareBuilder
from .results import OperationResult, ValidationFailedOperationResult
from .validation import ValidationError


class OperationExecutorMiddlewareBuilder(MiddlewareBuilder):
    """
    Calls the operation's handler and normalises its value.

    The handler is chosen by descriptor identity from the context's
    executor builders; zero or several matches is a configuration error.
    """

    def build(self, context: MiddlewareBuilderContext) -> None:
        executor_builder = select_executor_builder(context.descriptor, context.executor_builders)
        handler_result = executor_builder.build(context)
        context.append_frames(OperationResultCastFrame(handler_result))


class ReturnFrameMiddlewareBuilder(MiddlewareBuilder):
    """Returns the pipeline's ``OperationResult``."""

    def build(self, context: MiddlewareBuilderContext) -> None:
        context.append_frames(ReturnFrame(variable_type=OperationResult))


class ValidationMiddlewareBuilder(MiddlewareBuilder):
    """
    Turns ``ValidationError`` into a validation-failure result.

    Operations that define ``validate()`` have it called before the handler.
    """

    def build(self, context: MiddlewareBuilderContext) -> None:
        context.register_unhandled_exception_handler(
            ValidationError,
            lambda e: [CodeFrame(False, "return {}({}.errors)", ValidationFailedOperationResult, e)],
        )

        if context.descriptor.has_validate:
            operation = context.find_variable(context.descriptor.operation_type)
            validate = context.descriptor.operation_type.validate
            context.append_frames(MethodCall(validate, target=operation, return_type=None))


class LoggingMiddlewareBuilder(MiddlewareBuilder):
    """Logs the start of every execution through the pipeline's logger."""

    def __init__(self, level: str = "debug"):
        self.level = level

    def build(self, context: MiddlewareBuilderContext) -> None:
        operation = context.find_variable(OperationContext).get_property("operation")
        context.append_frames(LogFrame(self.level, f"Executing {context.descriptor.name}: %r", operation))
