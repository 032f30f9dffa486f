"""
The per-execution context passed to every generated pipeline.
"""

from typing import Any, Dict, Optional

from .descriptor import DataModel, OperationDescriptor
from .services import ServiceProvider


class OperationContext:
    """
    One execution of one operation.

    ``is_nested`` selects the pipeline's ``execute_nested`` entry point,
    which skips middleware that does not support nested execution.
    ``items`` is free-form storage shared by middleware.
    """

    def __init__(
        self,
        operation: Any,
        service_provider: Optional[ServiceProvider] = None,
        descriptor: Optional[OperationDescriptor] = None,
        data_model: Optional[DataModel] = None,
        is_nested: bool = False,
    ):
        self.operation = operation
        self.service_provider = service_provider if service_provider is not None else ServiceProvider()
        self.descriptor = descriptor
        self.data_model = data_model
        self.is_nested = is_nested
        self.items: Dict[str, Any] = {}

    def create_nested(self, operation: Any) -> 'OperationContext':
        """Context for executing another operation from within this one."""
        descriptor = self.data_model.find(type(operation)) if self.data_model is not None else None
        return OperationContext(
            operation,
            service_provider=self.service_provider,
            descriptor=descriptor,
            data_model=self.data_model,
            is_nested=True,
        )

    def __repr__(self) -> str:
        return f"OperationContext({type(self.operation).__name__}, nested={self.is_nested})"
