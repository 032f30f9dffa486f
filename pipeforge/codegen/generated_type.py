"""
Unit synthesis: one generated class.
"""

from __future__ import annotations

import inspect
import typing
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from ..utils.exceptions import ConfigurationError
from .method import GeneratedMethod
from .source_writer import SourceWriter
from .type_names import TypeReferences
from .variable_sources import VariableSource
from .variables import Argument, InjectedField, Initializer, StaticField, Variable

if TYPE_CHECKING:
    from .generated_module import GeneratedModule


class GeneratedType(VariableSource):
    """
    A class assembled from generated methods, injected fields and static fields.

    Method bodies are rendered before the field declarations and the
    constructor, so that fields requested while a method is generated are
    declared and wired. The type is also a variable source for its own
    fields.
    """

    def __init__(self, name: str, module: Optional['GeneratedModule'] = None, base_type=None, rules=None):
        self.name = name
        self.module = module
        self.base_type = None
        self.interfaces: List[type] = []
        self.methods: List[GeneratedMethod] = []
        self.injected_fields: List[InjectedField] = []
        self.static_fields: List[StaticField] = []
        self.base_constructor_arguments: List[InjectedField] = []
        self._rules = rules
        self.references = TypeReferences(module.bindings if module is not None else None)

        self.source_code: Optional[str] = None
        self.compiled_type: Optional[type] = None

        if base_type is not None:
            self.inherits_from(base_type)

    @property
    def rules(self):
        if self._rules is not None:
            return self._rules
        return self.module.rules if self.module is not None else None

    def inherits_from(self, base_type) -> 'GeneratedType':
        """
        Set the base class. Every abstract method of the base becomes a
        generated method with arguments taken from its signature.
        """
        self.base_type = base_type
        for method_name in sorted(getattr(base_type, "__abstractmethods__", ())):
            if self.method_for(method_name) is None:
                self.add_method(method_name, _arguments_of(getattr(base_type, method_name)))
        return self

    def implements(self, interface) -> 'GeneratedType':
        if interface not in self.interfaces:
            self.interfaces.append(interface)
        return self

    def add_method(self, name: str, arguments: Sequence[Argument] = (), return_type=None) -> GeneratedMethod:
        if self.method_for(name) is not None:
            raise ConfigurationError(f"Method '{name}' already exists on generated type '{self.name}'")
        method = GeneratedMethod(name, arguments, return_type, owner=self)
        self.methods.append(method)
        return method

    def method_for(self, name: str) -> Optional[GeneratedMethod]:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    # Fields

    def injected_field(self, variable_type, name: Optional[str] = None) -> InjectedField:
        """Existing injected field of ``variable_type`` (and ``name``) or a new one."""
        for existing in self.injected_fields:
            if existing.matches(variable_type, name):
                return existing
        return self.add_injected_field(InjectedField(variable_type, name))

    def add_injected_field(self, field: InjectedField) -> InjectedField:
        for existing in self.injected_fields:
            if existing is field:
                return existing
            if existing.matches(field.variable_type, field.name):
                raise ConfigurationError(
                    f"Generated type '{self.name}' already has an injected field named '{field.name}'"
                )
        self.injected_fields.append(field)
        return field

    def static_field(self, variable_type, name: str, initializer: Initializer) -> StaticField:
        for existing in self.static_fields:
            if existing.matches(variable_type, name):
                return existing
        return self.add_static_field(StaticField(variable_type, name, initializer))

    def add_static_field(self, field: StaticField) -> StaticField:
        for existing in self.static_fields:
            if existing is field:
                return existing
            if existing.name == field.name:
                raise ConfigurationError(
                    f"Generated type '{self.name}' already has a static field named '{field.name}'"
                )
        self.static_fields.append(field)
        return field

    def try_find_variable(self, method, variable_type, name=None) -> Optional[Variable]:
        for field in list(self.injected_fields) + list(self.static_fields):
            if field.matches(variable_type, name):
                return field
        return None

    def describe(self) -> str:
        return f"fields of {self.name}"

    def type_name(self, obj) -> str:
        return self.references.reference(obj)

    # Rendering

    def generate_code(self, indent_size: int = 4) -> str:
        """Render the class statement; imports are collected in ``references``."""
        method_sources = [method.generate_code(indent_size).rstrip("\n") for method in self.methods]

        bases = [self.type_name(t) for t in ([self.base_type] if self.base_type else []) + self.interfaces]
        header = f"class {self.name}({', '.join(bases)})" if bases else f"class {self.name}"

        writer = SourceWriter(indent_size)
        writer.block(header)

        for field in self.static_fields:
            writer.write_line(f"{field.name} = {field.initializer_source(self.references)}")
        if self.static_fields:
            writer.blank_line()

        if self.injected_fields or self.base_constructor_arguments:
            self._write_constructor(writer)
            writer.blank_line()

        for i, source in enumerate(method_sources):
            if i:
                writer.blank_line()
            writer.write_lines(source.split("\n"))

        writer.finish_block()
        self.source_code = writer.code()
        return self.source_code

    def _write_constructor(self, writer: SourceWriter) -> None:
        parameters = ["self"] + [f.argument_name for f in self.constructor_fields()]
        writer.block(f"def __init__({', '.join(parameters)})")
        if self.base_constructor_arguments:
            arguments = ", ".join(f.argument_name for f in self.base_constructor_arguments)
            writer.write_line(f"super().__init__({arguments})")
        for field in self.constructor_fields()[len(self.base_constructor_arguments):]:
            writer.write_line(f"self.{field.field_name} = {field.argument_name}")
        writer.finish_block()

    def constructor_fields(self) -> List[InjectedField]:
        """Injected fields in constructor parameter order."""
        fields = [f for f in self.injected_fields if not any(f is b for b in self.base_constructor_arguments)]
        return list(self.base_constructor_arguments) + fields

    def create_instance(self, resolve: Callable[[InjectedField], Any]):
        """Instantiate the compiled class, resolving each constructor argument."""
        if self.compiled_type is None:
            raise ConfigurationError(f"Generated type '{self.name}' has not been compiled")
        return self.compiled_type(*[resolve(field) for field in self.constructor_fields()])

    def __repr__(self) -> str:
        return f"GeneratedType({self.name!r})"


def _arguments_of(function) -> List[Argument]:
    hints: Dict[str, Any] = typing.get_type_hints(function)
    parameters = list(inspect.signature(function).parameters.values())[1:]
    return [
        Argument(hints.get(p.name, object), p.name)
        for p in parameters
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
