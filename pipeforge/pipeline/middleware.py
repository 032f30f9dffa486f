"""
Middleware contributors and their ordering.
"""

import sys
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import TYPE_CHECKING, List, Optional, Type

from ..utils.logging import get_logger

if TYPE_CHECKING:
    from .builder_context import MiddlewareBuilderContext
    from .descriptor import OperationDescriptor

logger = get_logger(__name__)


class MiddlewareStage(IntEnum):
    """Pipeline phases, in execution order."""

    SETUP = 0
    AUTHENTICATION = 1
    AUTHORISATION = 2
    VALIDATION = 3
    POPULATION = 4
    EXECUTION = 5
    POST_EXECUTION = 6


class MiddlewareBuilder(ABC):
    """
    Contributes frames and exception handlers to the pipeline of every
    operation it matches.
    """

    supports_nested_execution = True

    def matches(self, descriptor: 'OperationDescriptor') -> bool:
        return True

    @abstractmethod
    def build(self, context: 'MiddlewareBuilderContext') -> None:
        """Append frames or register handlers for one operation's method."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MiddlewareRegistration:
    def __init__(self, builder: MiddlewareBuilder, stage: MiddlewareStage, priority: int, index: int,
                 pinned_last: bool = False):
        self.builder = builder
        self.stage = stage
        self.priority = priority
        self.index = index
        self.pinned_last = pinned_last

    @property
    def sort_key(self):
        return (self.pinned_last, self.stage, self.priority, self.index)

    def __repr__(self) -> str:
        return f"MiddlewareRegistration({self.builder!r}, {self.stage.name}, {self.priority})"


class PipelineBuilder:
    """
    The ordered set of middleware contributors.

    Registrations are ordered by stage, then priority, then insertion order.
    The execution contributor is registered at ``(EXECUTION, 0)``; the
    return contributor always comes last.
    """

    def __init__(self):
        from .builtin import OperationExecutorMiddlewareBuilder, ReturnFrameMiddlewareBuilder

        self._registrations: List[MiddlewareRegistration] = []
        self.add_middleware(OperationExecutorMiddlewareBuilder(), MiddlewareStage.EXECUTION, 0)
        self._register(ReturnFrameMiddlewareBuilder(), MiddlewareStage.POST_EXECUTION, sys.maxsize, pinned_last=True)

    def add_middleware(self, builder: MiddlewareBuilder, stage: MiddlewareStage, priority: int = 0) -> 'PipelineBuilder':
        self._register(builder, stage, priority)
        return self

    def add_middleware_before(self, builder: MiddlewareBuilder, stage: MiddlewareStage) -> 'PipelineBuilder':
        """Register ahead of the default-priority contributors of ``stage``."""
        self._register(builder, stage, -1)
        return self

    def _register(self, builder, stage, priority, pinned_last=False) -> MiddlewareRegistration:
        registration = MiddlewareRegistration(
            builder, MiddlewareStage(stage), priority, len(self._registrations), pinned_last
        )
        self._registrations.append(registration)
        logger.debug(f"Registered {registration}")
        return registration

    @property
    def registrations(self) -> List[MiddlewareRegistration]:
        return sorted(self._registrations, key=lambda r: r.sort_key)

    @property
    def builders(self) -> List[MiddlewareBuilder]:
        return [registration.builder for registration in self.registrations]

    def get(self, builder_type: Type[MiddlewareBuilder]) -> Optional[MiddlewareBuilder]:
        for registration in self._registrations:
            if isinstance(registration.builder, builder_type):
                return registration.builder
        return None
