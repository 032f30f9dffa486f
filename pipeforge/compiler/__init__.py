"""
Compiler package for pipeforge.

Compile strategies, the on-disk compilation cache and the loader that
executes compiled units into modules.
"""

from .unit import SourceText, CompiledUnit, CompileResult, compute_content_hash
from .cache import CompilationCache
from .strategies import (
    CompileStrategy,
    InMemoryCompileStrategy,
    ToFileCompileStrategy,
    compile_sources,
    create_compile_strategy,
)
from .loader import ModuleLoader, LoadedModule
from .module_compiler import ModuleCompiler
