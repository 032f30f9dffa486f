"""
Template Rendering Engine.

This module lays out generated modules using Jinja2 templates.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from ...utils.exceptions import PipeforgeError

MODULE_TEMPLATE = "module.py.j2"


class JinjaTemplateRenderer:
    """Jinja2-based template renderer for generated source."""

    def __init__(self, template_dir: Optional[str] = None):
        """Initialize the template renderer."""
        if template_dir is None:
            template_dir = os.path.dirname(__file__)

        self._template_dir = Path(template_dir)
        self._env = Environment(
            loader=FileSystemLoader(str(self._template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render_file(self, template_path: str, context: Dict[str, Any]) -> str:
        """Render a template file with the given context."""
        try:
            template = self._env.get_template(template_path)
            return template.render(**context)
        except TemplateError as e:
            raise PipeforgeError(f"Template file rendering failed: {e}", {"template": template_path}) from e

    def render_module(self, unit_name: str, type_name: str, imports: List[str], class_source: str) -> str:
        from ... import __version__

        source = self.render_file(MODULE_TEMPLATE, {
            "version": __version__,
            "unit_name": unit_name,
            "type_name": type_name,
            "imports": imports,
            "class_source": class_source.rstrip("\n"),
        })
        return source if source.endswith("\n") else source + "\n"
