"""
Compile and load a generated module in one step.
"""

import types
from typing import Any, Mapping, Optional, Sequence

from ..utils.exceptions import CompilationError
from ..utils.logging import get_logger
from .loader import ModuleLoader
from .strategies import CompileStrategy
from .unit import SourceText

logger = get_logger(__name__)


class ModuleCompiler:
    """
    Runs a compile strategy and loads the result.

    This class is the single place where compile diagnostics are turned
    into a :class:`~pipeforge.utils.exceptions.CompilationError`.
    """

    def __init__(self, strategy: CompileStrategy, loader: Optional[ModuleLoader] = None):
        self.strategy = strategy
        self.loader = loader or ModuleLoader()

    def compile_and_load(self, unit_name: str, sources: Sequence[SourceText],
                         bindings: Optional[Mapping[str, Any]] = None) -> types.ModuleType:
        """
        Compile ``sources`` and execute them into a new module.

        Raises:
            CompilationError: If any source fails to compile
        """
        result = self.strategy.compile(unit_name, sources)
        if not result.succeeded:
            combined = "\n".join(source.text for source in sources)
            error = CompilationError(
                f"Compilation of unit '{unit_name}' failed with {len(result.diagnostics)} error(s)",
                combined,
                result.diagnostics,
            )
            for message in error.get_compiler_errors():
                logger.error(message)
            raise error

        return self.loader.load(result.unit, bindings).module
