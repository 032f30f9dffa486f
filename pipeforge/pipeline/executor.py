"""
Running generated pipelines.
"""

import asyncio
import inspect
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..codegen.generated_module import GeneratedModule
from ..codegen.generated_type import GeneratedType
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger
from .context import OperationContext
from .descriptor import DataModel
from .results import OkResult, OperationResult
from .services import ServiceProvider

logger = get_logger(__name__)


class OperationExecutorPipeline(ABC):
    """
    Base class of every generated pipeline.

    Both entry points return an :class:`OperationResult`, or an awaitable
    of one when the pipeline is asynchronous.
    """

    @abstractmethod
    def execute(self, context: OperationContext):
        """Run the full pipeline for ``context.operation``."""

    @abstractmethod
    def execute_nested(self, context: OperationContext):
        """Run the pipeline without middleware that does not support nesting."""


class CodeGennedExecutor:
    """
    Dispatches operations to their compiled pipelines.

    Pipeline instances are created on first use and shared afterwards;
    constructor injected fields are resolved from the root service
    provider.
    """

    def __init__(self, module: GeneratedModule, model: DataModel, services: ServiceProvider,
                 pipelines: Dict[type, GeneratedType]):
        self.module = module
        self.model = model
        self.services = services
        self._pipelines = dict(pipelines)
        self._instances: Dict[type, OperationExecutorPipeline] = {}
        self._lock = threading.Lock()

    def pipeline_for(self, operation_type: type) -> OperationExecutorPipeline:
        with self._lock:
            instance = self._instances.get(operation_type)
            if instance is None:
                generated = self._generated_type(operation_type)
                instance = generated.create_instance(lambda field: self.services.get(field.variable_type))
                self._instances[operation_type] = instance
                logger.debug(f"Created pipeline {generated.name}")
            return instance

    def is_async(self, operation_type: type) -> bool:
        return inspect.iscoroutinefunction(type(self.pipeline_for(operation_type)).execute)

    def create_context(self, operation: Any, service_provider: Optional[ServiceProvider] = None) -> OperationContext:
        return OperationContext(
            operation,
            service_provider=service_provider if service_provider is not None else self.services,
            descriptor=self.model.get(type(operation)),
            data_model=self.model,
        )

    def execute(self, context: OperationContext):
        """
        Run the pipeline of ``context.operation``.

        Returns the :class:`OperationResult`, or an awaitable of one when
        the pipeline is asynchronous.
        """
        operation_type = type(context.operation)
        if context.descriptor is None:
            context.descriptor = self.model.get(operation_type)
        if context.data_model is None:
            context.data_model = self.model

        pipeline = self.pipeline_for(operation_type)
        result = pipeline.execute_nested(context) if context.is_nested else pipeline.execute(context)

        if inspect.isawaitable(result):
            return _normalise_later(result)
        return _normalise(result)

    async def execute_async(self, context: OperationContext) -> OperationResult:
        result = self.execute(context)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def execute_with_new_scope(self, operation: Any) -> OperationResult:
        """Execute ``operation`` with a fresh scope of the root provider."""
        context = self.create_context(operation, self.services.create_scope())
        return await self.execute_async(context)

    def run(self, operation: Any) -> OperationResult:
        """Synchronous convenience wrapper, running asynchronous pipelines to completion."""
        result = self.execute(self.create_context(operation))
        if inspect.isawaitable(result):
            return asyncio.run(result)
        return result

    def what_code_did_i_generate(self) -> str:
        """The combined source of every generated pipeline."""
        return self.module.combined_source()

    def what_code_did_i_generate_for(self, operation_type: type) -> str:
        generated = self._generated_type(operation_type)
        return self.module.source_for(generated).text

    def _generated_type(self, operation_type: type) -> GeneratedType:
        generated = self._pipelines.get(operation_type)
        if generated is None:
            raise ConfigurationError(
                f"No pipeline has been generated for '{getattr(operation_type, '__name__', operation_type)}'"
            )
        return generated


def _normalise(result) -> OperationResult:
    if isinstance(result, OperationResult):
        return result
    return OkResult(result)


async def _normalise_later(awaitable) -> OperationResult:
    return _normalise(await awaitable)
