"""
A minimal service container.

Pipelines obtain handlers and other dependencies from a
:class:`ServiceProvider`. Singletons are resolved once and injected into
the generated pipeline's constructor; scoped and transient services are
resolved on every execution from the provider of the current context.
"""

import inspect
import threading
import typing
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from ..utils.exceptions import PipeforgeError


class Lifetime(Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class ServiceNotRegisteredError(PipeforgeError, LookupError):
    """Raised when a service type has no registration."""

    def __init__(self, service_type):
        super().__init__(
            f"No service of type '{getattr(service_type, '__qualname__', service_type)}' has been registered"
        )
        self.service_type = service_type


Factory = Union[type, Callable[['ServiceProvider'], Any]]


class ServiceRegistration:
    def __init__(self, service_type, lifetime: Lifetime, factory: Optional[Factory] = None, instance: Any = None):
        self.service_type = service_type
        self.lifetime = lifetime
        self.factory = factory
        self.instance = instance

    def create(self, provider: 'ServiceProvider'):
        if self.instance is not None:
            return self.instance
        factory = self.factory if self.factory is not None else self.service_type
        if inspect.isclass(factory):
            return provider.construct(factory)
        return factory(provider)


class ServiceProvider:
    """
    Registrations plus resolved instances.

    :meth:`create_scope` returns a provider sharing registrations and
    singletons but with its own scoped instances.
    """

    def __init__(self, parent: Optional['ServiceProvider'] = None):
        self._parent = parent
        self._registrations: Dict[Any, ServiceRegistration] = parent._registrations if parent else {}
        self._singletons: Dict[Any, Any] = parent._singletons if parent else {}
        self._singleton_lock: threading.RLock = parent._singleton_lock if parent else threading.RLock()
        self._scoped: Dict[Any, Any] = {}

    # Registration

    def add_singleton(self, service_type, implementation: Any = None) -> 'ServiceProvider':
        """Register a singleton from a class, a factory or an existing instance."""
        if implementation is None or inspect.isclass(implementation) or _is_factory(implementation):
            registration = ServiceRegistration(service_type, Lifetime.SINGLETON, implementation)
        else:
            registration = ServiceRegistration(service_type, Lifetime.SINGLETON, instance=implementation)
        self._registrations[service_type] = registration
        return self

    def add_scoped(self, service_type, factory: Optional[Factory] = None) -> 'ServiceProvider':
        self._registrations[service_type] = ServiceRegistration(service_type, Lifetime.SCOPED, factory)
        return self

    def add_transient(self, service_type, factory: Optional[Factory] = None) -> 'ServiceProvider':
        self._registrations[service_type] = ServiceRegistration(service_type, Lifetime.TRANSIENT, factory)
        return self

    def is_registered(self, service_type) -> bool:
        return service_type in self._registrations

    def lifetime_of(self, service_type) -> Optional[Lifetime]:
        registration = self._registrations.get(service_type)
        return registration.lifetime if registration is not None else None

    # Resolution

    def get(self, service_type):
        registration = self._registrations.get(service_type)
        if registration is None:
            raise ServiceNotRegisteredError(service_type)

        if registration.lifetime is Lifetime.SINGLETON:
            with self._singleton_lock:
                if service_type not in self._singletons:
                    self._singletons[service_type] = registration.create(self)
                return self._singletons[service_type]

        if registration.lifetime is Lifetime.SCOPED:
            if service_type not in self._scoped:
                self._scoped[service_type] = registration.create(self)
            return self._scoped[service_type]

        return registration.create(self)

    def try_get(self, service_type):
        if not self.is_registered(service_type):
            return None
        return self.get(service_type)

    def construct(self, cls):
        """Instantiate ``cls``, resolving constructor parameters by type hint."""
        if cls.__init__ is object.__init__:
            return cls()

        hints = typing.get_type_hints(cls.__init__)
        arguments = {}
        for parameter in list(inspect.signature(cls).parameters.values()):
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            hint = hints.get(parameter.name)
            if hint is ServiceProvider:
                arguments[parameter.name] = self
            elif hint is not None and self.is_registered(hint):
                arguments[parameter.name] = self.get(hint)
            elif parameter.default is inspect.Parameter.empty:
                raise ServiceNotRegisteredError(hint if hint is not None else parameter.name)
        return cls(**arguments)

    def create_scope(self) -> 'ServiceProvider':
        return ServiceProvider(parent=self)


def _is_factory(implementation) -> bool:
    return callable(implementation) and (inspect.isfunction(implementation) or inspect.ismethod(implementation))
