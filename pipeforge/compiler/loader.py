"""
Loading of compiled units.

A compiled unit is executed into a fresh module object whose namespace
has been pre-filled with the unit's bindings. Source texts are registered
with :mod:`linecache` so tracebacks through generated code show the
generated lines, including for units loaded from the on-disk cache.
"""

import linecache
import threading
import types
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..utils.logging import get_logger
from .unit import CompiledUnit

logger = get_logger(__name__)


@dataclass
class LoadedModule:
    """A unit that has been executed, with the module it produced."""

    unit: CompiledUnit
    module: types.ModuleType

    @property
    def from_cache(self) -> bool:
        return self.unit.from_cache


class ModuleLoader:
    """
    Executes compiled units and remembers what it has loaded.

    Loading the same unit (same name, content hash and bindings) twice
    returns the module loaded the first time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._loaded: Dict[Tuple, LoadedModule] = {}

    def load(self, unit: CompiledUnit, bindings: Optional[Mapping[str, Any]] = None) -> LoadedModule:
        bindings = dict(bindings or {})
        key = (unit.name, unit.content_hash, tuple(sorted((name, id(value)) for name, value in bindings.items())))

        with self._lock:
            loaded = self._loaded.get(key)
            if loaded is not None:
                return loaded

            module = types.ModuleType(unit.name)
            module.__dict__.update(bindings)
            register_sources(unit.sources)

            for filename, code in unit.code_objects:
                exec(code, module.__dict__)

            loaded = LoadedModule(unit, module)
            self._loaded[key] = loaded

        logger.debug(
            f"Loaded unit '{unit.name}' ({len(unit.code_objects)} sources"
            f"{', from cache' if unit.from_cache else ''})"
        )
        return loaded

    def loaded_units(self):
        with self._lock:
            return [loaded.unit.name for loaded in self._loaded.values()]

    def clear(self) -> None:
        with self._lock:
            self._loaded.clear()


def register_sources(sources: Mapping[str, str]) -> None:
    """Make generated source lines available to tracebacks."""
    for filename, text in sources.items():
        lines = text.splitlines(keepends=True)
        linecache.cache[filename] = (len(text), None, lines, filename)
