"""
The context handed to every middleware contributor.
"""

from typing import Callable, Dict, Iterable, List, Optional

from ..codegen.frames import Frame, ensure_frame
from ..codegen.generated_type import GeneratedType
from ..codegen.method import GeneratedMethod
from ..codegen.variables import Variable
from ..utils.exceptions import ConfigurationError
from .descriptor import DataModel, OperationDescriptor
from .frames import ErrorHandlerFrame
from .services import ServiceProvider
from .variable_sources import instance_variable

ExceptionHandlerFactory = Callable[[Variable], Iterable[Frame]]


class MiddlewareBuilderContext:
    """
    Access to the method being built for one operation.

    Contributors append frames to :attr:`execute_method`, obtain variables,
    and register exception handlers and cleanup frames. The handlers and
    cleanup frames are woven into a single ``try`` wrapping the method once
    every contributor has run.
    """

    def __init__(
        self,
        generated_type: GeneratedType,
        execute_method: GeneratedMethod,
        descriptor: OperationDescriptor,
        model: DataModel,
        service_provider: ServiceProvider,
        executor_builders: Iterable = (),
        is_nested: bool = False,
    ):
        self.generated_type = generated_type
        self.execute_method = execute_method
        self.descriptor = descriptor
        self.model = model
        self.service_provider = service_provider
        self.executor_builders = list(executor_builders)
        self.is_nested = is_nested

        self._exception_handlers: Dict[type, ExceptionHandlerFactory] = {}
        self._finally_frames: List[Frame] = []

    def append_frames(self, *frames: Frame) -> 'MiddlewareBuilderContext':
        self.execute_method.add_frames(*[ensure_frame(frame) for frame in frames])
        return self

    def register_unhandled_exception_handler(self, kind: type, create: ExceptionHandlerFactory) -> bool:
        """
        Handle exceptions of ``kind`` with the frames ``create`` returns.

        Only the first registration for a given kind is used.

        Returns:
            True if this registration was accepted
        """
        if not (isinstance(kind, type) and issubclass(kind, BaseException)):
            raise ConfigurationError(f"{kind!r} is not an exception type")
        if kind in self._exception_handlers:
            return False
        self._exception_handlers[kind] = create
        return True

    def register_finally_frames(self, *frames: Frame) -> 'MiddlewareBuilderContext':
        self._finally_frames.extend(ensure_frame(frame) for frame in frames)
        return self

    @property
    def exception_kinds(self) -> List[type]:
        return list(self._exception_handlers)

    def find_variable(self, variable_type, name: Optional[str] = None) -> Variable:
        return self.execute_method.find_variable(variable_type, name)

    def try_find_variable(self, variable_type, name: Optional[str] = None) -> Optional[Variable]:
        return self.execute_method.try_find_variable(variable_type, name)

    def variable_from_container(self, service_type) -> Variable:
        variable = self.try_variable_from_container(service_type)
        if variable is None:
            raise ConfigurationError(
                f"Type '{getattr(service_type, '__qualname__', service_type)}' is not registered with "
                f"the service provider",
                {"operation": self.descriptor.name},
            )
        return variable

    def try_variable_from_container(self, service_type) -> Optional[Variable]:
        if not self.service_provider.is_registered(service_type):
            return None
        existing = self.execute_method.try_find_variable(service_type)
        if existing is not None:
            return existing
        return instance_variable(self.execute_method, self.service_provider, service_type)

    def build_error_handler(self) -> Optional[ErrorHandlerFrame]:
        """The ``try`` frame for the registered handlers, or None if there are none."""
        if not self._exception_handlers and not self._finally_frames:
            return None

        frame = ErrorHandlerFrame()
        for kind, create in self._exception_handlers.items():
            frame.add_catch(kind, create)
        frame.add_finally(*self._finally_frames)
        return frame
