"""
Typed value slots used by generated code.

A :class:`Variable` is identified by instance, never by name. Its
``usage`` is the expression emitted wherever the value is read: a local
name for most variables, ``parent.attr`` for properties and
``self._name`` for constructor injected fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Union

from ..utils.exceptions import ConfigurationError
from ..utils.naming import default_variable_name, sanitize_identifier

if TYPE_CHECKING:
    from .frames import Frame
    from .type_names import TypeReferences


class Variable:
    """
    A value produced by a frame (``creator``) or supplied from outside.

    ``dependencies`` are other variables that must be available before this
    one can be read; a frame that uses this variable implicitly uses them.
    """

    def __init__(self, variable_type, usage: Optional[str] = None, creator: Optional['Frame'] = None,
                 dependencies: Iterable['Variable'] = ()):
        self.variable_type = variable_type
        self._usage = usage or default_variable_name(variable_type)
        self.creator = creator
        self.dependencies: List[Variable] = list(dependencies)
        self._name_overridden = False
        self._frozen = False

    @property
    def usage(self) -> str:
        return self._usage

    @property
    def name(self) -> str:
        """Unqualified name used when matching lookups by name."""
        return self._usage

    def override_name(self, name: str) -> 'Variable':
        """
        Rename the variable.

        Allowed once, and only until the variable has been emitted by a
        closed method.
        """
        if self._name_overridden:
            raise ConfigurationError(
                f"Name of variable '{self._usage}' has already been overridden",
                {"type": _type_label(self.variable_type)},
            )
        if self._frozen:
            raise ConfigurationError(
                f"Variable '{self._usage}' has already been emitted and cannot be renamed",
                {"type": _type_label(self.variable_type)},
            )
        self._usage = sanitize_identifier(name)
        self._name_overridden = True
        return self

    def freeze(self) -> None:
        self._frozen = True

    def get_property(self, attribute: str, property_type=object) -> 'PropertyVariable':
        return PropertyVariable(self, attribute, property_type)

    def matches(self, variable_type, name: Optional[str] = None) -> bool:
        if self.variable_type != variable_type:
            return False
        return name is None or self.name == name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_type_label(self.variable_type)} {self.usage})"


class Argument(Variable):
    """A formal parameter of a generated method."""

    def __init__(self, variable_type, name: Optional[str] = None):
        super().__init__(variable_type, name)


class PropertyVariable(Variable):
    """An attribute read from another variable, e.g. ``context.operation``."""

    def __init__(self, parent: Variable, attribute: str, property_type=object):
        super().__init__(property_type, attribute, dependencies=[parent])
        self.parent = parent
        self.attribute = attribute

    @property
    def usage(self) -> str:
        return f"{self.parent.usage}.{self.attribute}"

    @property
    def name(self) -> str:
        return self.attribute


class InjectedField(Variable):
    """
    A dependency passed to the generated type's constructor.

    Inside methods it is read as ``self._<name>``; the constructor takes it
    as a parameter named ``<name>``.
    """

    def __init__(self, variable_type, name: Optional[str] = None):
        super().__init__(variable_type, name)

    @property
    def argument_name(self) -> str:
        return self._usage

    @property
    def field_name(self) -> str:
        return f"_{self._usage}"

    @property
    def usage(self) -> str:
        return f"self.{self.field_name}"


Initializer = Union[str, Callable[['TypeReferences'], str]]


class StaticField(Variable):
    """
    A class attribute of the generated type with a source initializer.

    ``initializer`` is either literal source text or a callable receiving
    the owning type's :class:`~pipeforge.codegen.type_names.TypeReferences`
    so it can reference (and import) other types.
    """

    def __init__(self, variable_type, name: str, initializer: Initializer):
        super().__init__(variable_type, name)
        self.initializer = initializer

    @property
    def usage(self) -> str:
        return f"self.{self._usage}"

    def initializer_source(self, references: 'TypeReferences') -> str:
        if callable(self.initializer):
            return self.initializer(references)
        return self.initializer


def _type_label(variable_type) -> str:
    return getattr(variable_type, "__qualname__", None) or str(variable_type)
