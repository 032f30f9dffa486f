"""
Variable sources of the middleware layer.
"""

from typing import Optional

from ..codegen.variable_sources import VariableSource
from ..codegen.variables import Variable
from .context import OperationContext
from .descriptor import DataModel, OperationDescriptor
from .frames import ConcreteOperationCastFrame, GetInstanceFrame
from .services import Lifetime, ServiceProvider

_CONTEXT_PROPERTIES = {
    ServiceProvider: "service_provider",
    OperationDescriptor: "descriptor",
    DataModel: "data_model",
}


class OperationContextVariableSource(VariableSource):
    """
    Values reachable from the ``OperationContext`` argument.

    The concrete operation is read into a local once per method; the
    service provider, descriptor and data model are read as properties of
    the context.
    """

    def __init__(self, descriptor: OperationDescriptor):
        self.descriptor = descriptor

    def try_find_variable(self, method, variable_type, name=None) -> Optional[Variable]:
        if variable_type is OperationContext:
            return None

        context = method.try_find_variable(OperationContext)
        if context is None:
            return None

        if variable_type is self.descriptor.operation_type:
            return ConcreteOperationCastFrame(context, variable_type).operation_variable

        attribute = _CONTEXT_PROPERTIES.get(variable_type)
        if attribute is not None:
            return context.get_property(attribute, variable_type)
        return None

    def describe(self) -> str:
        return f"OperationContextVariableSource({self.descriptor.name})"


def instance_variable(method, services: ServiceProvider, service_type) -> Variable:
    """
    Variable holding a container resolved service.

    Singletons become constructor injected fields of the generated type;
    every other lifetime is resolved per execution by a
    :class:`GetInstanceFrame`.
    """
    if services.lifetime_of(service_type) is Lifetime.SINGLETON and method.owner is not None:
        return method.owner.injected_field(service_type)
    return GetInstanceFrame(service_type).instance_variable


class ContainerVariableSource(VariableSource):
    """Supplies any type registered with the service provider."""

    def __init__(self, services: ServiceProvider):
        self.services = services

    def try_find_variable(self, method, variable_type, name=None) -> Optional[Variable]:
        if name is not None or not self.services.is_registered(variable_type):
            return None
        return instance_variable(method, self.services, variable_type)
