"""
Generation rules shared by every type of a generated module.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..compiler.loader import ModuleLoader
from ..compiler.strategies import CompileStrategy, create_compile_strategy
from ..utils.config import PipeforgeConfig, get_config
from ..utils.debug_artifacts import DebugArtifactManager
from .variable_sources import VariableSource


class GenerationRules:
    """
    Settings and collaborators used while generating and compiling a module.

    ``variable_sources`` are consulted by every generated method after its
    own sources and before the fields of its owning type.
    """

    def __init__(
        self,
        module_name: str = "pipeforge_generated",
        compile_strategy: Optional[CompileStrategy] = None,
        variable_sources: Sequence[VariableSource] = (),
        indent_size: int = 4,
        debug_artifacts: Optional[DebugArtifactManager] = None,
        loader: Optional[ModuleLoader] = None,
    ):
        self.module_name = module_name
        self.compile_strategy = compile_strategy or create_compile_strategy(PipeforgeConfig())
        self.variable_sources: List[VariableSource] = list(variable_sources)
        self.indent_size = indent_size
        self.debug_artifacts = debug_artifacts
        self.loader = loader or ModuleLoader()

    @classmethod
    def from_config(cls, config: Optional[PipeforgeConfig] = None, **overrides) -> 'GenerationRules':
        """Build rules from configuration, falling back to the global configuration."""
        config = config or get_config()

        debug_artifacts = None
        if config.is_debug_enabled() and config.debug.trace_synthesis:
            debug_artifacts = DebugArtifactManager(config.debug.debug_dir)

        settings = dict(
            module_name=config.compilation.module_name,
            compile_strategy=create_compile_strategy(config),
            debug_artifacts=debug_artifacts,
        )
        settings.update(overrides)
        return cls(**settings)

    def add_variable_source(self, source: VariableSource) -> 'GenerationRules':
        self.variable_sources.append(source)
        return self
