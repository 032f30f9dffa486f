"""
Module assembly.

A :class:`GeneratedModule` holds the generated types of one application
configuration, renders one source text per type and compiles them
together into a single loadable module.
"""

from __future__ import annotations

from types import ModuleType
from typing import Any, Dict, List, Optional

from ..compiler.module_compiler import ModuleCompiler
from ..compiler.unit import SourceText
from ..utils.exceptions import DuplicateTypeError
from ..utils.logging import get_logger
from ..utils.naming import sanitize_identifier
from .generated_type import GeneratedType
from .rules import GenerationRules
from .templates import JinjaTemplateRenderer

logger = get_logger(__name__)


class GeneratedModule:
    """
    The collection of generated types compiled into one unit.

    ``bindings`` maps names used in generated source to objects that
    cannot be imported by name; they are placed in the module namespace
    before the generated code runs.
    """

    def __init__(self, name: Optional[str] = None, rules: Optional[GenerationRules] = None):
        self.rules = rules or GenerationRules()
        self.name = sanitize_identifier(name or self.rules.module_name)
        self.types: List[GeneratedType] = []
        self.bindings: Dict[str, Any] = {}
        self.loaded_module: Optional[ModuleType] = None
        self._renderer = JinjaTemplateRenderer()
        self._sources: Dict[str, SourceText] = {}

    def add_type(self, name: str, base_type=None) -> GeneratedType:
        if self.type_for(name) is not None:
            raise DuplicateTypeError(name, self.name)
        generated = GeneratedType(name, module=self, base_type=base_type)
        self.types.append(generated)
        return generated

    def type_for(self, name: str) -> Optional[GeneratedType]:
        for generated in self.types:
            if generated.name == name:
                return generated
        return None

    def source_filename(self, generated: GeneratedType) -> str:
        return f"{self.name}/{generated.name}.py"

    def source_for(self, generated: GeneratedType) -> SourceText:
        """Render (once) the full module source of a single type."""
        source = self._sources.get(generated.name)
        if source is None:
            class_source = generated.generate_code(self.rules.indent_size)
            text = self._renderer.render_module(
                self.name, generated.name, generated.references.sorted_imports(), class_source
            )
            source = SourceText(self.source_filename(generated), text)
            self._sources[generated.name] = source

            if self.rules.debug_artifacts is not None:
                self.rules.debug_artifacts.save_source(self.name, generated.name, text)
        return source

    def generate_sources(self) -> List[SourceText]:
        return [self.source_for(generated) for generated in self.types]

    def combined_source(self) -> str:
        return "\n".join(source.text for source in self.generate_sources())

    def compile_all(self) -> ModuleType:
        """
        Generate, compile and load every type.

        Each type's ``compiled_type`` is set to the loaded class.

        Raises:
            CompilationError: If any generated source fails to compile
        """
        sources = self.generate_sources()
        logger.debug(f"Generated {len(sources)} sources for module '{self.name}'")

        compiler = ModuleCompiler(self.rules.compile_strategy, self.rules.loader)
        module = compiler.compile_and_load(self.name, sources, self.bindings)

        for generated in self.types:
            generated.compiled_type = getattr(module, generated.name)
        self.loaded_module = module
        return module
