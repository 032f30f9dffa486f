"""
Custom exception definitions.

This module defines the exception hierarchy for pipeforge-specific
errors raised while synthesizing, compiling and loading pipelines.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional


class PipeforgeError(Exception):
    """
    Base exception for all pipeforge-related errors.

    This is the root exception class for all pipeforge-specific
    errors, providing common functionality and error handling.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize pipeforge error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(PipeforgeError):
    """
    Raised when a pipeline cannot be synthesized from its configuration.

    Configuration errors are detected before any source is compiled and
    always name the offending type or operation.
    """


class DuplicateFrameError(ConfigurationError):
    """Raised when the same frame instance is added to more than one frame list."""

    def __init__(self, frame):
        super().__init__(
            f"Frame {frame!r} has already been added to a frame collection",
            {"frame_type": type(frame).__name__},
        )
        self.frame = frame


class DuplicateTypeError(ConfigurationError):
    """Raised when two generated types share a name within one module."""

    def __init__(self, type_name: str, module_name: str):
        super().__init__(
            f"A type named '{type_name}' already exists in generated module '{module_name}'",
            {"type_name": type_name, "module_name": module_name},
        )
        self.type_name = type_name


class NoHandlerFoundError(ConfigurationError):
    """Raised when an operation has no registered handler."""

    def __init__(self, operation_name: str):
        super().__init__(
            f"No handler has been registered for operation '{operation_name}'",
            {"operation": operation_name},
        )
        self.operation_name = operation_name


class MultipleHandlersFoundError(ConfigurationError):
    """Raised when more than one handler claims the same operation."""

    def __init__(self, operation_name: str, handlers: Iterable):
        handler_names = [str(h) for h in handlers]
        super().__init__(
            f"More than one handler has been registered for operation '{operation_name}'",
            {"operation": operation_name, "handlers": ", ".join(handler_names)},
        )
        self.operation_name = operation_name
        self.handlers = handler_names


class UnresolvableVariableError(ConfigurationError):
    """
    Raised when no producer exists for a requested variable.

    The message lists every location that was searched so that a missing
    argument, frame or variable source can be identified quickly.
    """

    def __init__(self, type_name: str, searched: List[str], name: Optional[str] = None):
        target = f"'{type_name}'" if name is None else f"'{type_name}' named '{name}'"
        super().__init__(
            f"No producer for variable of type {target}",
            {"searched": "; ".join(searched)},
        )
        self.type_name = type_name
        self.variable_name = name
        self.searched = list(searched)


class DependencyCycleError(ConfigurationError):
    """Raised when frames depend on each other's variables in a cycle."""

    def __init__(self, chain: List[str]):
        super().__init__(
            "Circular dependency detected between frames: " + " -> ".join(chain),
            {"length": len(chain)},
        )
        self.chain = list(chain)


@dataclass
class Diagnostic:
    """A single problem reported while translating generated source."""

    id: str
    message: str
    filename: str
    line: Optional[int] = None
    column: Optional[int] = None
    severity: str = "error"

    def __str__(self) -> str:
        location = self.filename
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return f"{self.id}: {self.message} @ {location}"


class CompilationError(PipeforgeError):
    """
    Raised when generated source fails to compile.

    The full combined source text is kept alongside the structured
    diagnostics so that a failure can be investigated without
    re-running synthesis.
    """

    def __init__(self, message: str, source_code: str = "", diagnostics: Optional[List[Diagnostic]] = None):
        """
        Initialize compilation error.

        Args:
            message: Error description
            source_code: Combined source text that failed to compile
            diagnostics: Problems reported by the compiler
        """
        diagnostics = list(diagnostics or [])
        details = {}
        if source_code:
            details['source_length'] = len(source_code)
        if diagnostics:
            details['diagnostic_count'] = len(diagnostics)

        super().__init__(message, details)
        self.source_code = source_code
        self.diagnostics = diagnostics

    def get_compiler_errors(self) -> List[str]:
        """
        Extract error messages from the diagnostics.

        Returns:
            List of error message strings
        """
        return [str(d) for d in self.diagnostics if d.severity == "error"]
