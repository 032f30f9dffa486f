"""
Frames used by the middleware layer.
"""

import inspect
import logging
from typing import Callable, Iterable, List, Optional

from ..codegen.frames import CompositeFrame, Frame, SyncFrame
from ..codegen.frames_collection import FramesCollection
from ..codegen.variables import Variable
from .context import OperationContext
from .results import OkResult, OperationResult
from .services import ServiceProvider


class ConcreteOperationCastFrame(SyncFrame):
    """Reads the operation from the context into a local of its concrete type."""

    def __init__(self, context_variable: Variable, operation_type: type):
        super().__init__()
        self.operation_type = operation_type
        self.context_variable = context_variable
        self.uses_variable(context_variable)
        self.operation_variable = self.create_variable(operation_type)

    def generate_code(self, variables, method, writer, next_):
        writer.write_line(f"{self.operation_variable.usage} = {self.context_variable.usage}.operation")


class GetInstanceFrame(SyncFrame):
    """Resolves a scoped or transient service from the context's provider."""

    def __init__(self, service_type, name: Optional[str] = None):
        super().__init__()
        self.service_type = service_type
        self.instance_variable = self.create_variable(service_type, name)

    def generate_code(self, variables, method, writer, next_):
        provider = variables.find_variable(ServiceProvider)
        writer.write_line(
            f"{self.instance_variable.usage} = {provider.usage}.get({method.type_name(self.service_type)})"
        )

    def __repr__(self) -> str:
        return f"GetInstanceFrame({getattr(self.service_type, '__qualname__', self.service_type)!r})"


class OperationResultCastFrame(SyncFrame):
    """
    Normalises a handler's value into an :class:`OperationResult`.

    Results are passed through unchanged and anything else is wrapped in
    :class:`OkResult`; the decision is made at generation time when the
    handler's return type makes it known.
    """

    def __init__(self, handler_result: Variable):
        super().__init__()
        self.handler_result = handler_result
        self.uses_variable(handler_result)
        self.result_variable = self.create_variable(OperationResult, "operation_result")

    def generate_code(self, variables, method, writer, next_):
        value = self.handler_result.usage
        result_type = self.handler_result.variable_type
        target = self.result_variable.usage

        if inspect.isclass(result_type) and issubclass(result_type, OperationResult):
            writer.write_line(f"{target} = {value}")
        elif inspect.isclass(result_type) and result_type is not object:
            writer.write_line(f"{target} = {method.type_name(OkResult)}({value})")
        else:
            writer.write_line(
                f"{target} = {value} if isinstance({value}, {method.type_name(OperationResult)}) "
                f"else {method.type_name(OkResult)}({value})"
            )


class LogFrame(SyncFrame):
    """Writes a log call through the generated type's ``logging.Logger`` field."""

    def __init__(self, level: str, message: str, *args: Variable):
        super().__init__()
        if level not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError(f"Unknown log level '{level}'")
        self.level = level
        self.message = message
        self.args = list(args)
        self.uses_variable(*self.args)

    def generate_code(self, variables, method, writer, next_):
        logger = variables.find_variable(logging.Logger)
        arguments = [repr(self.message)] + [a.usage for a in self.args]
        writer.write_line(f"{logger.usage}.{self.level}({', '.join(arguments)})")


class LogExceptionFrame(SyncFrame):
    """Logs a caught exception, with traceback, through the type's logger."""

    def __init__(self, exception_variable: Variable, message: str = "Unhandled exception executing %s"):
        super().__init__()
        self.exception_variable = exception_variable
        self.message = message
        self.uses_variable(exception_variable)

    def generate_code(self, variables, method, writer, next_):
        logger = variables.find_variable(logging.Logger)
        context = variables.find_variable(OperationContext)
        writer.write_line(
            f"{logger.usage}.error({self.message!r}, type({context.usage}.operation).__name__, "
            f"exc_info={self.exception_variable.usage})"
        )


class CatchClause:
    def __init__(self, exception_type: type, variable: Variable, frames: FramesCollection):
        self.exception_type = exception_type
        self.variable = variable
        self.frames = frames

    def __repr__(self) -> str:
        return f"CatchClause({self.exception_type.__name__})"


class ErrorHandlerFrame(CompositeFrame):
    """
    Wraps the rest of the method in ``try``/``except``/``finally``.

    Catch clauses are kept most specific first: a clause is inserted before
    the first registered clause whose exception type is a superclass of
    its own. The child frames of :attr:`finally_frames` always run.
    """

    wraps = True

    def __init__(self):
        super().__init__()
        self.finally_frames = self.frames
        self.clauses: List[CatchClause] = []

    def add_catch(self, exception_type: type, create: Callable[[Variable], Iterable[Frame]]) -> CatchClause:
        variable = self.create_variable(exception_type, "e")
        clause = CatchClause(exception_type, variable, FramesCollection(owner=self, frames=create(variable)))

        position = len(self.clauses)
        for i, existing in enumerate(self.clauses):
            if issubclass(exception_type, existing.exception_type):
                position = i
                break
        self.clauses.insert(position, clause)
        return clause

    def add_finally(self, *frames: Frame) -> 'ErrorHandlerFrame':
        self.finally_frames.extend(frames)
        return self

    def child_collections(self) -> List[FramesCollection]:
        return [clause.frames for clause in self.clauses] + [self.finally_frames]

    def generate_code(self, variables, method, writer, next_):
        if not self.clauses and not self.finally_frames:
            next_.generate(method, writer)
            return

        writer.block("try")
        next_.generate(method, writer)
        writer.finish_block()

        for clause in self.clauses:
            writer.block(f"except {method.type_name(clause.exception_type)} as {clause.variable.usage}")
            self.generate_children(method, writer, clause.frames)
            writer.finish_block()

        if self.finally_frames:
            writer.block("finally")
            self.generate_children(method, writer, self.finally_frames)
            writer.finish_block()

    def __repr__(self) -> str:
        return f"ErrorHandlerFrame({self.clauses!r})"
