"""
Explicit registry of operation handlers.

Every operation is paired with exactly one handler at configuration
time. A handler is either a class resolved from the service provider and
called through its ``handle`` method, or the operation's own ``invoke``
method.
"""

import typing
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, List, Tuple

from ..codegen.frames import MethodCall
from ..codegen.variables import Variable
from ..utils.exceptions import ConfigurationError, MultipleHandlersFoundError, NoHandlerFoundError
from .descriptor import DataModel, OperationDescriptor

if TYPE_CHECKING:
    from .builder_context import MiddlewareBuilderContext


def _result_type(function):
    hint = typing.get_type_hints(function).get("return")
    if hint is None or hint is type(None):
        return object
    return hint


class OperationExecutorBuilder(ABC):
    """Emits the call to the handler of one operation."""

    def __init__(self, descriptor: OperationDescriptor):
        self.descriptor = descriptor

    @abstractmethod
    def build(self, context: 'MiddlewareBuilderContext') -> Variable:
        """Append the handler call and return the variable holding its result."""


class HandlerExecutorBuilder(OperationExecutorBuilder):
    """Calls ``handler_type.<method_name>`` on an instance from the container."""

    def __init__(self, descriptor: OperationDescriptor, handler_type: type, method_name: str = "handle"):
        super().__init__(descriptor)
        if not callable(getattr(handler_type, method_name, None)):
            raise ConfigurationError(
                f"Handler '{handler_type.__qualname__}' has no '{method_name}' method",
                {"operation": descriptor.name},
            )
        self.handler_type = handler_type
        self.method_name = method_name

    def build(self, context):
        handler = context.variable_from_container(self.handler_type)
        function = getattr(self.handler_type, self.method_name)
        call = MethodCall(function, target=handler, return_type=_result_type(function))
        context.append_frames(call)
        return call.return_variable

    def __repr__(self) -> str:
        return f"HandlerExecutorBuilder({self.handler_type.__qualname__})"


class InlineExecutorBuilder(OperationExecutorBuilder):
    """Calls the operation's own ``invoke`` method."""

    def build(self, context):
        operation_type = self.descriptor.operation_type
        operation = context.find_variable(operation_type)
        function = operation_type.invoke
        call = MethodCall(function, target=operation, return_type=_result_type(function))
        context.append_frames(call)
        return call.return_variable

    def __repr__(self) -> str:
        return f"InlineExecutorBuilder({self.descriptor.name})"


Registration = Tuple[type, Callable[[OperationDescriptor], OperationExecutorBuilder], str]


class HandlerRegistry:
    """
    Operation to handler pairs, populated at configuration time.

    :meth:`validate` checks that every operation of a data model has exactly
    one handler before any code is generated.
    """

    def __init__(self):
        self._registrations: List[Registration] = []

    def register(self, operation_type: type, handler_type: type, method_name: str = "handle") -> 'HandlerRegistry':
        self._registrations.append((
            operation_type,
            lambda descriptor: HandlerExecutorBuilder(descriptor, handler_type, method_name),
            handler_type.__qualname__,
        ))
        return self

    def register_inline(self, operation_type: type) -> 'HandlerRegistry':
        if not callable(getattr(operation_type, "invoke", None)):
            raise ConfigurationError(f"Operation '{operation_type.__qualname__}' has no 'invoke' method")
        self._registrations.append((operation_type, InlineExecutorBuilder, f"{operation_type.__qualname__}.invoke"))
        return self

    def handles(self, operation_type: type, method_name: str = "handle"):
        """Class decorator registering the decorated class as the handler of ``operation_type``."""
        def decorator(handler_type):
            self.register(operation_type, handler_type, method_name)
            return handler_type
        return decorator

    @property
    def operation_types(self) -> List[type]:
        seen: List[type] = []
        for operation_type, _, _ in self._registrations:
            if operation_type not in seen:
                seen.append(operation_type)
        return seen

    def executor_builders(self, model: DataModel) -> List[OperationExecutorBuilder]:
        """One executor builder per registration, bound to the model's descriptors."""
        builders = []
        for operation_type, factory, _ in self._registrations:
            descriptor = model.find(operation_type)
            if descriptor is not None:
                builders.append(factory(descriptor))
        return builders

    def validate(self, model: DataModel) -> None:
        """
        Raise unless every operation in ``model`` has exactly one handler.

        Raises:
            NoHandlerFoundError: An operation has no handler
            MultipleHandlersFoundError: An operation has more than one handler
        """
        for descriptor in model:
            labels = [label for operation_type, _, label in self._registrations
                      if operation_type is descriptor.operation_type]
            if not labels:
                raise NoHandlerFoundError(descriptor.name)
            if len(labels) > 1:
                raise MultipleHandlersFoundError(descriptor.name, labels)


def select_executor_builder(descriptor: OperationDescriptor, builders) -> OperationExecutorBuilder:
    """The single executor builder bound to ``descriptor``."""
    matching = [builder for builder in builders if builder.descriptor is descriptor]
    if not matching:
        raise NoHandlerFoundError(descriptor.name)
    if len(matching) > 1:
        raise MultipleHandlersFoundError(descriptor.name, matching)
    return matching[0]
