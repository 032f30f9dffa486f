"""
Configuration surface of a pipeline executor.
"""

from typing import Optional

from ..codegen.rules import GenerationRules
from ..utils.config import PipeforgeConfig
from .descriptor import DataModel, OperationDescriptor
from .handlers import HandlerRegistry
from .middleware import PipelineBuilder


class PipelineOptions:
    """
    Operations, handlers and middleware of one application.

    ``rules`` overrides the generation rules otherwise derived from
    ``config`` (or the global configuration).
    """

    def __init__(self, config: Optional[PipeforgeConfig] = None):
        self.config = config
        self.model = DataModel()
        self.builder = PipelineBuilder()
        self.handlers = HandlerRegistry()
        self.rules: Optional[GenerationRules] = None

    def add_operation(self, operation_type: type, handler_type: Optional[type] = None,
                      name: Optional[str] = None) -> OperationDescriptor:
        """
        Register an operation, optionally with its handler class.

        Without a handler class, an operation defining ``invoke`` is handled
        inline.
        """
        descriptor = self.model.add_operation(operation_type, name)
        if handler_type is not None:
            self.handlers.register(operation_type, handler_type)
        elif descriptor.has_inline_handler and operation_type not in self.handlers.operation_types:
            self.handlers.register_inline(operation_type)
        return descriptor

    def generation_rules(self) -> GenerationRules:
        if self.rules is None:
            self.rules = GenerationRules.from_config(self.config)
        return self.rules
