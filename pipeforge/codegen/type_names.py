"""
Rendering of type and function references in generated source.

Builtins are written by bare name. Objects that can be imported by name
are written as ``module.qualname`` and the module is added to the owning
type's import set. Everything else (classes defined in functions, objects
from ``__main__``) is bound into the generated module's namespace under a
deterministic name when the module is loaded.
"""

from __future__ import annotations

import builtins
import sys
from typing import Any, Dict, List, Optional, Set

from ..utils.naming import generate_unique_name, sanitize_identifier

BINDING_PREFIX = "_ref_"


def is_importable(obj) -> bool:
    """Return True when ``obj`` can be reached as ``module.qualname``."""
    module_name = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None)
    if not module_name or not qualname or module_name == "__main__" or "<" in qualname:
        return False

    module = sys.modules.get(module_name)
    if module is None:
        return False

    target = module
    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            return False
    return target is obj


class TypeReferences:
    """
    Collects the imports and load-time bindings needed by one generated type.

    ``bindings`` is normally shared by every type of a generated module so
    that binding names are unique across the module.
    """

    def __init__(self, bindings: Optional[Dict[str, Any]] = None):
        self.imports: Set[str] = set()
        self.bindings: Dict[str, Any] = bindings if bindings is not None else {}

    def reference(self, obj) -> str:
        """Source expression that evaluates to ``obj`` inside the generated module."""
        if obj is None or obj is type(None):
            return "None"

        module_name = getattr(obj, "__module__", None)
        qualname = getattr(obj, "__qualname__", None)

        if module_name == "builtins" and qualname and getattr(builtins, qualname, None) is obj:
            return qualname

        if is_importable(obj):
            self.imports.add(module_name)
            return f"{module_name}.{qualname}"

        return self._bind(obj, module_name, qualname)

    def sorted_imports(self) -> List[str]:
        return sorted(self.imports)

    def _bind(self, obj, module_name: Optional[str], qualname: Optional[str]) -> str:
        for name, bound in self.bindings.items():
            if bound is obj:
                return name

        label = qualname or getattr(obj, "__name__", None) or type(obj).__name__
        if module_name:
            label = f"{module_name}.{label}"
        base = BINDING_PREFIX + sanitize_identifier(label.replace("<locals>", "locals").replace(".", "_"))
        name = generate_unique_name(base, set(self.bindings))
        self.bindings[name] = obj
        return name
