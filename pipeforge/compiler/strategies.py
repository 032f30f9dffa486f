"""
Compile strategies.

A compile strategy turns the source texts of a unit into code objects
ready to be loaded, or into a list of diagnostics. Two strategies are
provided: :class:`InMemoryCompileStrategy` compiles in-process every time,
:class:`ToFileCompileStrategy` keeps compiled artifacts on disk keyed by a
hash of the sources so that an unchanged unit is never compiled twice.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from types import CodeType
from typing import List, Optional, Sequence, Tuple

from ..utils.config import IN_MEMORY, TO_FILE
from ..utils.exceptions import Diagnostic, PipeforgeError
from ..utils.logging import PipeforgeLogger
from .cache import CompilationCache
from .unit import CompiledUnit, CompileResult, SourceText, compute_content_hash

compile_logger = PipeforgeLogger(__name__)


def compile_sources(unit_name: str, sources: Sequence[SourceText], optimize: int = -1) -> CompileResult:
    """
    Compile every source, collecting a diagnostic for each one that fails.

    Compilation continues past a failing source so that all problems are
    reported at once.
    """
    code_objects: List[Tuple[str, CodeType]] = []
    diagnostics: List[Diagnostic] = []

    for source in sources:
        try:
            code = compile(source.text, source.filename, "exec", dont_inherit=True, optimize=optimize)
            code_objects.append((source.filename, code))
        except SyntaxError as e:
            diagnostics.append(Diagnostic(
                id=type(e).__name__,
                message=e.msg or str(e),
                filename=source.filename,
                line=e.lineno,
                column=e.offset,
            ))
        except ValueError as e:
            diagnostics.append(Diagnostic(id=type(e).__name__, message=str(e), filename=source.filename))

    if diagnostics:
        return CompileResult(diagnostics=diagnostics)

    unit = CompiledUnit(
        name=unit_name,
        content_hash=compute_content_hash(sources),
        code_objects=code_objects,
        sources={s.filename: s.text for s in sources},
    )
    return CompileResult(unit=unit)


class CompileStrategy(ABC):
    """Turns source texts into a loadable unit or diagnostics."""

    @abstractmethod
    def compile(self, unit_name: str, sources: Sequence[SourceText]) -> CompileResult:
        """Compile ``sources`` as the unit ``unit_name``."""


class InMemoryCompileStrategy(CompileStrategy):
    """Compiles in-process only; nothing is written to disk."""

    def __init__(self, optimize: int = -1):
        self.optimize = optimize

    def compile(self, unit_name, sources):
        compile_logger.log_compilation_start(unit_name, compute_content_hash(sources), len(sources))
        return compile_sources(unit_name, sources, self.optimize)


class ToFileCompileStrategy(CompileStrategy):
    """
    Compiles to ``{unit}.artifact`` in an output directory and reuses it.

    When ``{unit}.artifact`` and ``{unit}.manifest`` both exist and the
    manifest holds the hash of the current sources, the artifact is loaded
    without compiling. Otherwise the sources are compiled and the artifact,
    the ``{unit}.symbols`` source map and the manifest are written.
    """

    def __init__(self, output_dir: Optional[str] = None, optimize: int = -1,
                 cache: Optional[CompilationCache] = None):
        if cache is None:
            if output_dir is None:
                output_dir = os.path.join(tempfile.gettempdir(), 'pipeforge_cache')
            cache = CompilationCache(output_dir)
        self.cache = cache
        self.optimize = optimize
        self.compilations = 0

    @property
    def output_dir(self):
        return self.cache.cache_dir

    def compile(self, unit_name, sources):
        content_hash = compute_content_hash(sources)

        cached = self.cache.load(unit_name, content_hash)
        if cached is not None:
            compile_logger.log_cache_hit(unit_name, content_hash)
            return CompileResult(unit=cached)

        compile_logger.log_compilation_start(unit_name, content_hash, len(sources))
        self.compilations += 1
        result = compile_sources(unit_name, sources, self.optimize)
        if result.succeeded:
            self.cache.store(result.unit)
        return result


def create_compile_strategy(config) -> CompileStrategy:
    """
    Build the compile strategy named by the configuration.

    ``to_file`` writes into ``compilation.output_dir``, falling back to
    ``cache.cache_dir``. A disabled cache always selects the in-memory
    strategy.
    """
    strategy = config.compilation.strategy
    optimize = config.compilation.optimize

    if strategy == TO_FILE and config.is_cache_enabled():
        output_dir = config.compilation.output_dir or config.cache.cache_dir
        return ToFileCompileStrategy(output_dir, optimize=optimize)
    if strategy in (IN_MEMORY, TO_FILE):
        return InMemoryCompileStrategy(optimize=optimize)
    raise PipeforgeError(f"Unknown compile strategy '{strategy}'", {"known": f"{IN_MEMORY}, {TO_FILE}"})
