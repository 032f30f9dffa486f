"""
Debug Artifacts Management for generated pipelines.

This module provides utilities for saving the source text of generated
types, so that what was compiled can be inspected after the fact.
"""

import os
from pathlib import Path
from typing import List, Optional

from .logging import get_logger

logger = get_logger(__name__)


class DebugArtifactManager:
    """Manages debugging artifacts for generated modules."""

    def __init__(self, debug_dir: Optional[str] = None):
        """
        Initialize debug artifact manager.

        Args:
            debug_dir: Directory to write artifacts to (``./debug_dir`` if None)
        """
        if debug_dir is None:
            debug_dir = os.path.join(os.getcwd(), 'debug_dir')

        self.debug_dir = Path(debug_dir)

        # Create debug directory if it doesn't exist
        self.debug_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Debug artifacts will be saved to: {self.debug_dir}")

    def get_source_path(self, unit_name: str, type_name: str) -> Path:
        """Get path for a generated type's source file."""
        return self.debug_dir / f"{unit_name}.{type_name}.py"

    def save_source(self, unit_name: str, type_name: str, source: str) -> Path:
        """
        Save generated source code to debug directory.

        Args:
            unit_name: Name of the compiled unit
            type_name: Name of the generated type
            source: Source text of the type's module

        Returns:
            Path to saved file
        """
        file_path = self.get_source_path(unit_name, type_name)

        with open(file_path, 'w') as f:
            f.write(source)

        logger.info(f"Saved generated source: {file_path}")
        return file_path

    def list_artifacts(self, unit_name: Optional[str] = None) -> List[Path]:
        """
        List all debug artifacts, optionally filtered by unit name.

        Args:
            unit_name: Optional unit name to filter by

        Returns:
            List of artifact file paths
        """
        pattern = f"{unit_name}.*" if unit_name else "*"
        return sorted(self.debug_dir.glob(pattern))

    def clean_artifacts(self, unit_name: Optional[str] = None) -> int:
        """
        Clean debug artifacts, optionally filtered by unit name.

        Returns:
            Number of files cleaned
        """
        cleaned = 0
        for artifact in self.list_artifacts(unit_name):
            if artifact.is_file():
                artifact.unlink()
                cleaned += 1

        logger.info(f"Cleaned {cleaned} debug artifacts")
        return cleaned
