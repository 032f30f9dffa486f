"""
Synthesis of one pipeline class per registered operation.
"""

import logging
from typing import Dict, Optional

from ..codegen.frames import CodeFrame
from ..codegen.generated_module import GeneratedModule
from ..codegen.generated_type import GeneratedType
from ..codegen.method import GeneratedMethod
from ..utils.logging import get_logger
from .builder_context import MiddlewareBuilderContext
from .descriptor import OperationDescriptor
from .executor import CodeGennedExecutor, OperationExecutorPipeline
from .frames import LogExceptionFrame
from .handlers import HandlerExecutorBuilder
from .options import PipelineOptions
from .results import UnhandledExceptionOperationResult
from .services import ServiceProvider
from .variable_sources import ContainerVariableSource, OperationContextVariableSource

logger = get_logger(__name__)

LOGGER_FIELD = "_logger"


def _unhandled_exception_frames(exception):
    return [
        LogExceptionFrame(exception),
        CodeFrame(False, "return {}({})", UnhandledExceptionOperationResult, exception),
    ]


class PipelineExecutorBuilder:
    """
    Builds a :class:`CodeGennedExecutor` from :class:`PipelineOptions`.

    Every operation of the data model gets a generated subclass of
    :class:`OperationExecutorPipeline` with ``execute`` and
    ``execute_nested`` methods, assembled from the matching middleware
    contributors in stage order. All classes are compiled together as one
    module.
    """

    def __init__(self, options: PipelineOptions, services: Optional[ServiceProvider] = None):
        self.options = options
        self.services = services if services is not None else ServiceProvider()

    def build(self) -> CodeGennedExecutor:
        options = self.options
        options.handlers.validate(options.model)
        executor_builders = options.handlers.executor_builders(options.model)
        for executor_builder in executor_builders:
            if isinstance(executor_builder, HandlerExecutorBuilder) and \
                    not self.services.is_registered(executor_builder.handler_type):
                self.services.add_transient(executor_builder.handler_type)

        module = GeneratedModule(rules=options.generation_rules())
        pipelines: Dict[type, GeneratedType] = {}

        for descriptor in options.model:
            generated = module.add_type(descriptor.pipeline_type_name, base_type=OperationExecutorPipeline)
            logger_name = f"pipeforge.pipelines.{generated.name}"
            generated.static_field(
                logging.Logger,
                LOGGER_FIELD,
                lambda refs, name=logger_name: f"{refs.reference(logging.getLogger)}({name!r})",
            )

            self._build_method(generated, generated.method_for("execute"), descriptor, executor_builders, False)
            self._build_method(generated, generated.method_for("execute_nested"), descriptor, executor_builders, True)
            pipelines[descriptor.operation_type] = generated

        logger.info(f"Synthesizing {len(pipelines)} pipelines into module '{module.name}'")
        module.compile_all()
        return CodeGennedExecutor(module, options.model, self.services, pipelines)

    def _build_method(self, generated: GeneratedType, method: GeneratedMethod, descriptor: OperationDescriptor,
                      executor_builders, is_nested: bool) -> MiddlewareBuilderContext:
        method.sources.append(OperationContextVariableSource(descriptor))
        method.sources.append(ContainerVariableSource(self.services))

        context = MiddlewareBuilderContext(
            generated,
            method,
            descriptor,
            self.options.model,
            self.services,
            executor_builders,
            is_nested,
        )

        for registration in self.options.builder.registrations:
            builder = registration.builder
            if not builder.matches(descriptor):
                continue
            if is_nested and not builder.supports_nested_execution:
                logger.debug(f"Skipping {builder!r} for {method.qualified_name}")
                continue
            builder.build(context)

        context.register_unhandled_exception_handler(Exception, _unhandled_exception_frames)

        error_handler = context.build_error_handler()
        method.frames.insert(0, error_handler)
        return context
