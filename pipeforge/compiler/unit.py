"""
Data exchanged between compile strategies, the cache and the loader.
"""

import hashlib
from dataclasses import dataclass, field
from types import CodeType
from typing import Dict, List, Optional, Sequence, Tuple

from ..utils.exceptions import Diagnostic


@dataclass(frozen=True)
class SourceText:
    """One generated source file."""

    filename: str
    text: str


@dataclass
class CompiledUnit:
    """Code objects of a unit, in source order, ready to be executed."""

    name: str
    content_hash: str
    code_objects: List[Tuple[str, CodeType]]
    sources: Dict[str, str] = field(default_factory=dict)
    from_cache: bool = False


@dataclass
class CompileResult:
    """Either a compiled unit or the diagnostics explaining why there is none."""

    unit: Optional[CompiledUnit] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.unit is not None and not self.diagnostics


def compute_content_hash(sources: Sequence[SourceText]) -> str:
    """SHA-256 (hex) over the concatenated source texts."""
    hasher = hashlib.sha256()
    for source in sources:
        hasher.update(source.text.encode('utf-8'))
    return hasher.hexdigest()
