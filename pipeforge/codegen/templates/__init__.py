"""Jinja2 templates for generated modules."""

from .renderer import JinjaTemplateRenderer, MODULE_TEMPLATE

__all__ = ["JinjaTemplateRenderer", "MODULE_TEMPLATE"]
