"""
Compilation result caching.

This module keeps compiled units on disk so that a process restart with
unchanged generated sources skips compilation. Each unit is stored as
three files in the cache directory:

* ``{unit}.artifact``: the marshalled code objects, prefixed with the
  interpreter's bytecode magic number;
* ``{unit}.symbols``: a JSON source map used to restore tracebacks;
* ``{unit}.manifest``: the hex content hash of the sources, nothing else.
"""

import importlib.util
import json
import marshal
import os
import shutil
import tempfile
import threading
from pathlib import Path
from types import CodeType
from typing import Any, Dict, Optional

from ..utils.logging import PipeforgeLogger
from .unit import CompiledUnit

cache_logger = PipeforgeLogger(__name__)

ARTIFACT_SUFFIX = ".artifact"
SYMBOLS_SUFFIX = ".symbols"
MANIFEST_SUFFIX = ".manifest"


class CompilationCache:
    """
    Manages caching of compiled units.

    Reads and writes of the cache files are guarded by a lock; files are
    written to a temporary name and moved into place.
    """

    def __init__(self, cache_dir: Optional[str] = None):
        """
        Initialize compilation cache.

        Args:
            cache_dir: Directory for cache storage (default: system temp)
        """
        if cache_dir is None:
            cache_dir = os.path.join(tempfile.gettempdir(), 'pipeforge_cache')

        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._stats = {'hits': 0, 'misses': 0, 'stores': 0, 'stale': 0}

    def artifact_path(self, unit_name: str) -> Path:
        return self.cache_dir / f"{unit_name}{ARTIFACT_SUFFIX}"

    def symbols_path(self, unit_name: str) -> Path:
        return self.cache_dir / f"{unit_name}{SYMBOLS_SUFFIX}"

    def manifest_path(self, unit_name: str) -> Path:
        return self.cache_dir / f"{unit_name}{MANIFEST_SUFFIX}"

    def read_manifest(self, unit_name: str) -> Optional[str]:
        """Return the stored content hash for a unit, or None."""
        with self._lock:
            try:
                return self._read_manifest(unit_name)
            except (OSError, ValueError):
                return None

    def load(self, unit_name: str, content_hash: str) -> Optional[CompiledUnit]:
        """
        Retrieve the cached unit when its manifest matches ``content_hash``.

        Args:
            unit_name: Name of the unit
            content_hash: Hash of the current sources

        Returns:
            Cached unit if found and valid, None otherwise
        """
        with self._lock:
            artifact_path = self.artifact_path(unit_name)
            if not artifact_path.exists() or not self.manifest_path(unit_name).exists():
                self._stats['misses'] += 1
                cache_logger.log_cache_miss(unit_name, "no previous compilation")
                return None

            try:
                stored_hash = self._read_manifest(unit_name)
            except (OSError, ValueError) as e:
                self._stats['stale'] += 1
                self._stats['misses'] += 1
                cache_logger.logger.warning(
                    f"Manifest {self.manifest_path(unit_name)} is unreadable, recompiling: {e}"
                )
                return None

            if stored_hash != content_hash:
                self._stats['misses'] += 1
                cache_logger.log_cache_miss(unit_name, "sources changed since last compilation")
                return None

            try:
                code_objects = _read_artifact(artifact_path)
            except (OSError, ValueError, EOFError, TypeError) as e:
                self._stats['stale'] += 1
                self._stats['misses'] += 1
                cache_logger.logger.warning(f"Cached artifact {artifact_path} is unreadable, recompiling: {e}")
                return None

            self._stats['hits'] += 1
            return CompiledUnit(
                name=unit_name,
                content_hash=content_hash,
                code_objects=code_objects,
                sources=self._read_symbols(unit_name),
                from_cache=True,
            )

    def store(self, unit: CompiledUnit) -> None:
        """
        Write a unit's artifact, symbols and manifest.

        The manifest is written last so that an interrupted store never
        leaves a manifest pointing at a missing artifact.
        """
        artifact = importlib.util.MAGIC_NUMBER + marshal.dumps(
            [(filename, code) for filename, code in unit.code_objects]
        )
        symbols = json.dumps({
            "unit": unit.name,
            "content_hash": unit.content_hash,
            "sources": unit.sources,
        }, indent=2, sort_keys=True)

        with self._lock:
            _atomic_write(self.artifact_path(unit.name), artifact)
            _atomic_write(self.symbols_path(unit.name), symbols.encode('utf-8'))
            _atomic_write(self.manifest_path(unit.name), unit.content_hash.encode('ascii'))
            self._stats['stores'] += 1

        cache_logger.logger.debug(f"Cached unit '{unit.name}' in {self.cache_dir}")

    def invalidate(self, unit_name: str) -> bool:
        """
        Remove a unit's cached files.

        Returns:
            True if anything was removed
        """
        removed = False
        with self._lock:
            for path in (self.artifact_path(unit_name), self.symbols_path(unit_name),
                         self.manifest_path(unit_name)):
                if path.exists():
                    path.unlink()
                    removed = True
        return removed

    def clear(self) -> None:
        """Remove all entries from cache."""
        with self._lock:
            shutil.rmtree(self.cache_dir, ignore_errors=True)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        cache_logger.logger.info("Cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary containing cache statistics
        """
        with self._lock:
            units = sorted(p.stem for p in self.cache_dir.glob(f"*{MANIFEST_SUFFIX}"))
            return dict(self._stats, units=units, cache_dir=str(self.cache_dir))

    def _read_manifest(self, unit_name: str) -> Optional[str]:
        path = self.manifest_path(unit_name)
        if not path.exists():
            return None
        return path.read_text(encoding='ascii').strip()

    def _read_symbols(self, unit_name: str) -> Dict[str, str]:
        path = self.symbols_path(unit_name)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding='utf-8')).get("sources", {})
        except (OSError, ValueError) as e:
            cache_logger.logger.warning(f"Ignoring unreadable symbols file {path}: {e}")
            return {}


def _read_artifact(path: Path):
    data = path.read_bytes()
    magic = importlib.util.MAGIC_NUMBER
    if not data.startswith(magic):
        raise ValueError("artifact was written by a different interpreter version")
    entries = marshal.loads(data[len(magic):])
    code_objects = []
    for filename, code in entries:
        if not isinstance(code, CodeType):
            raise TypeError(f"artifact entry for {filename!r} is not a code object")
        code_objects.append((str(filename), code))
    return code_objects


def _atomic_write(path: Path, data: bytes) -> None:
    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
