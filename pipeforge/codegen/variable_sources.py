"""
Pluggable producers of variables.

A variable source is consulted after a method's arguments and frames when
a lookup cannot otherwise be satisfied. It may return an existing
variable or create a new frame and return the variable that frame
creates. Results are memoized per method and ``(type, name)`` by
:class:`~pipeforge.codegen.method.MethodVariables`, so a source is asked
at most once for each combination.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .frames import Frame
from .variables import Variable

if TYPE_CHECKING:
    from .method import GeneratedMethod


class VariableSource(ABC):
    """Base class of variable sources."""

    @abstractmethod
    def try_find_variable(self, method: 'GeneratedMethod', variable_type,
                          name: Optional[str] = None) -> Optional[Variable]:
        """Return a variable of ``variable_type`` or None if this source cannot supply one."""

    def describe(self) -> str:
        return type(self).__name__


class FrameFactoryVariableSource(VariableSource):
    """
    Supplies variables of one type by building a frame on demand.

    ``factory`` receives the requesting method and returns the frame whose
    first created variable of ``variable_type`` is handed out.
    """

    def __init__(self, variable_type, factory: Callable[['GeneratedMethod'], Frame]):
        self.variable_type = variable_type
        self.factory = factory

    def try_find_variable(self, method, variable_type, name=None):
        if variable_type != self.variable_type:
            return None

        frame = self.factory(method)
        for variable in frame.creates:
            if variable.matches(variable_type, name):
                return variable
        return None

    def describe(self) -> str:
        return f"{type(self).__name__}({getattr(self.variable_type, '__qualname__', self.variable_type)})"


class MappingVariableSource(VariableSource):
    """Hands out fixed variables keyed by type."""

    def __init__(self, variables: Optional[Dict[object, Variable]] = None):
        self.variables: Dict[object, Variable] = dict(variables or {})

    def add(self, variable: Variable) -> 'MappingVariableSource':
        self.variables[variable.variable_type] = variable
        return self

    def try_find_variable(self, method, variable_type, name=None):
        variable = self.variables.get(variable_type)
        if variable is not None and variable.matches(variable_type, name):
            return variable
        return None
