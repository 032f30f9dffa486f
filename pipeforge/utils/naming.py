"""
Naming utilities for generated code.

Systematic identifier generation for variables, fields and generated
types, kept in one place so every emitter names things the same way.
"""

import keyword
import re
from typing import Set

CAMEL_CASE_PATTERN = r'([a-z0-9])([A-Z])'
SNAKE_CASE_REPLACEMENT = r'\1_\2'
ACRONYM_PATTERN = r'([A-Z]+)([A-Z][a-z])'

PIPELINE_SUFFIX = "ExecutorPipeline"


def camel_to_snake_case(name: str) -> str:
    """Convert CamelCase to snake_case."""
    name = re.sub(ACRONYM_PATTERN, SNAKE_CASE_REPLACEMENT, name)
    return re.sub(CAMEL_CASE_PATTERN, SNAKE_CASE_REPLACEMENT, name).lower()


def snake_to_camel_case(name: str) -> str:
    """Convert snake_case to CamelCase."""
    components = name.split('_')
    return ''.join(word.capitalize() for word in components)


def sanitize_identifier(name: str) -> str:
    """Sanitize a string to be a valid identifier."""
    # Replace invalid characters with underscores
    sanitized = re.sub(r'[^a-zA-Z0-9_]', '_', name)

    # Ensure it doesn't start with a number
    if sanitized and sanitized[0].isdigit():
        sanitized = f"_{sanitized}"

    # Ensure it's not empty
    if not sanitized:
        sanitized = "unnamed"

    if keyword.iskeyword(sanitized):
        sanitized = f"{sanitized}_"

    return sanitized


def generate_unique_name(base_name: str, used_names: Set[str], separator: str = "_") -> str:
    """Generate a unique name by appending a counter if needed."""
    if base_name not in used_names:
        return base_name

    counter = 1
    while True:
        candidate = f"{base_name}{separator}{counter}"
        if candidate not in used_names:
            return candidate
        counter += 1


def default_variable_name(variable_type) -> str:
    """
    Default local name for a value of the given type.

    ``OperationContext`` becomes ``operation_context``; generic aliases and
    other non-class objects fall back to their string form.
    """
    raw = getattr(variable_type, "__name__", None) or str(variable_type)
    return sanitize_identifier(camel_to_snake_case(raw.split(".")[-1]))


def pipeline_type_name(operation_type) -> str:
    """Name of the generated pipeline class for an operation type."""
    raw = getattr(operation_type, "__qualname__", None) or str(operation_type)
    return sanitize_identifier(raw.replace(".", "")) + PIPELINE_SUFFIX
