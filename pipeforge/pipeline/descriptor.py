"""
Descriptions of the operations a pipeline executor knows about.
"""

import inspect
import typing
from typing import Dict, Iterator, List, Optional

from ..utils.exceptions import ConfigurationError
from ..utils.naming import pipeline_type_name


class OperationDescriptor:
    """
    Everything known about one operation type.

    Descriptors are compared by identity: the :class:`DataModel` creates
    exactly one per operation type.
    """

    def __init__(self, operation_type: type, name: Optional[str] = None):
        self.operation_type = operation_type
        self.name = name or operation_type.__name__
        self.properties: Dict[str, object] = _properties_of(operation_type)

    @property
    def pipeline_type_name(self) -> str:
        return pipeline_type_name(self.operation_type)

    @property
    def has_validate(self) -> bool:
        return callable(getattr(self.operation_type, "validate", None))

    @property
    def has_inline_handler(self) -> bool:
        return callable(getattr(self.operation_type, "invoke", None))

    def __repr__(self) -> str:
        return f"OperationDescriptor({self.name!r})"


class DataModel:
    """The registered operations, in registration order."""

    def __init__(self):
        self._operations: List[OperationDescriptor] = []

    def add_operation(self, operation_type: type, name: Optional[str] = None) -> OperationDescriptor:
        if not inspect.isclass(operation_type):
            raise ConfigurationError(f"Operations must be classes, got {operation_type!r}")
        existing = self.find(operation_type)
        if existing is not None:
            return existing
        descriptor = OperationDescriptor(operation_type, name)
        self._operations.append(descriptor)
        return descriptor

    def find(self, operation_type: type) -> Optional[OperationDescriptor]:
        for descriptor in self._operations:
            if descriptor.operation_type is operation_type:
                return descriptor
        return None

    def get(self, operation_type: type) -> OperationDescriptor:
        descriptor = self.find(operation_type)
        if descriptor is None:
            raise ConfigurationError(
                f"Operation '{getattr(operation_type, '__name__', operation_type)}' has not been registered"
            )
        return descriptor

    @property
    def operations(self) -> List[OperationDescriptor]:
        return list(self._operations)

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(list(self._operations))

    def __len__(self) -> int:
        return len(self._operations)


def _properties_of(operation_type: type) -> Dict[str, object]:
    try:
        return dict(typing.get_type_hints(operation_type))
    except (NameError, TypeError):
        return dict(getattr(operation_type, "__annotations__", {}))
